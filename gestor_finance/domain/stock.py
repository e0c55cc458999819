"""Stock movement arithmetic"""

from typing import Iterable

from gestor_finance.domain.exceptions import InvalidMovementError
from gestor_finance.domain.models import MovementType, StockMovement


def stock_delta(movement_type: MovementType, quantity: int) -> int:
    """
    Signed stock change of a movement.

    "in" adds the quantity; "out" and "adjustment" remove it.
    """
    if quantity <= 0:
        raise InvalidMovementError(f"Movement quantity must be positive, got {quantity}")
    try:
        movement_type = MovementType(movement_type)
    except ValueError as e:
        raise InvalidMovementError(f"Unknown movement type: {movement_type}") from e

    return quantity if movement_type == MovementType.IN else -quantity


def replay_stock(movements: Iterable[StockMovement]) -> int:
    """Stock obtained by applying movements in creation order, starting from 0"""
    stock = 0
    for movement in movements:
        stock += stock_delta(movement.movement_type, movement.quantity)
    return stock
