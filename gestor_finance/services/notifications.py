"""Notification helpers shared by the ledger services"""

import logging
from contextlib import contextmanager
from typing import Iterator, List, Tuple

from gestor_finance.domain.exceptions import DomainException
from gestor_finance.domain.ports import Notifier


@contextmanager
def notify_on_failure(notifier: Notifier, action: str) -> Iterator[None]:
    """Turn a domain error raised inside the block into one error notification, then re-raise"""
    try:
        yield
    except DomainException as e:
        logging.warning(f"{action}: {e}", extra={"error_type": type(e).__name__})
        notifier.notify_error(f"{action}: {e}")
        raise


class DeferredNotifier:
    """
    Holds a request's notifications until its transaction settles.

    deliver() sends them after a commit; fail() drops the successes of work
    that was rolled back and makes sure exactly one error goes out.
    """

    def __init__(self, notifier: Notifier):
        self.notifier = notifier
        self.pending: List[Tuple[str, str]] = []

    def notify_success(self, message: str) -> None:
        self.pending.append(("success", message))

    def notify_error(self, message: str) -> None:
        self.pending.append(("error", message))

    def deliver(self) -> None:
        pending, self.pending = self.pending, []
        for level, message in pending:
            if level == "success":
                self.notifier.notify_success(message)
            else:
                self.notifier.notify_error(message)

    def fail(self, message: str) -> None:
        errors = [m for level, m in self.pending if level == "error"]
        self.pending = []
        for error in errors or [message]:
            self.notifier.notify_error(error)
