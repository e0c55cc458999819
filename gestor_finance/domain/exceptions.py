"""Domain-specific exceptions"""

from typing import List


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidPlanError(DomainException):
    """Plan cannot be generated (non-positive total or count below one)"""

    pass


class PlanValidationError(DomainException):
    """Installment batch failed validation; carries every violated rule"""

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


class NotFoundError(DomainException):
    """Referenced installment, service, material or expense does not exist"""

    pass


class InsufficientInstallmentsError(DomainException):
    """Requested parcel count does not exceed the already-paid count"""

    pass


class InvalidTransitionError(DomainException):
    """Installment is paid or canceled and cannot change anymore"""

    pass


class InvalidMovementError(DomainException):
    """Stock movement quantity or type is invalid"""

    pass


class PersistenceError(DomainException):
    """Record store failed to load or save a collection"""

    pass
