"""
Delivery lifecycle.

Status changes and driver assignment for deliveries. By default any status in
the DeliveryStatus vocabulary may be written over any other, so operators can
correct records by hand. With ``strict=True`` the TRANSITIONS table is enforced:

    PENDING    -> ASSIGNED, CANCELLED
    ASSIGNED   -> IN_TRANSIT, CANCELLED
    IN_TRANSIT -> DELIVERED, FAILED, CANCELLED
    DELIVERED, FAILED, CANCELLED are terminal
"""

import logging
from typing import Dict, FrozenSet

from database import get_document_by_id, update_document, utc_now
from errors import InvalidStatusError, InvalidTransitionError, ValidationError
from schemas import DeliveryStatus

logger = logging.getLogger(__name__)

COLLECTION = "delivery"

TRANSITIONS: Dict[DeliveryStatus, FrozenSet[DeliveryStatus]] = {
    DeliveryStatus.PENDING: frozenset({DeliveryStatus.ASSIGNED, DeliveryStatus.CANCELLED}),
    DeliveryStatus.ASSIGNED: frozenset({DeliveryStatus.IN_TRANSIT, DeliveryStatus.CANCELLED}),
    DeliveryStatus.IN_TRANSIT: frozenset(
        {DeliveryStatus.DELIVERED, DeliveryStatus.FAILED, DeliveryStatus.CANCELLED}
    ),
    DeliveryStatus.DELIVERED: frozenset(),
    DeliveryStatus.FAILED: frozenset(),
    DeliveryStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in TRANSITIONS.items() if not targets)


def parse_status(value) -> DeliveryStatus:
    """Map a raw status value onto DeliveryStatus or raise InvalidStatusError."""
    if not value:
        raise ValidationError("Status is required")
    try:
        return DeliveryStatus(value)
    except ValueError:
        raise InvalidStatusError(value) from None


def can_transition(current: DeliveryStatus, target: DeliveryStatus) -> bool:
    # Re-applying the current status is a no-op, never an error
    return current == target or target in TRANSITIONS[current]


def update_status(delivery_id: str, status, strict: bool = False) -> dict:
    """Set a delivery's status.

    deliveryDate is stamped with the current time if and only if the new
    status is DELIVERED; any other status leaves it untouched.
    """
    target = parse_status(status)
    delivery = get_document_by_id(COLLECTION, delivery_id)
    current = DeliveryStatus(delivery["status"])

    if strict and not can_transition(current, target):
        raise InvalidTransitionError(current.value, target.value)

    changes = {"status": target.value}
    if target == DeliveryStatus.DELIVERED:
        changes["delivery_date"] = utc_now()
    updated = update_document(COLLECTION, delivery_id, changes)

    logger.info("Delivery %s status %s -> %s", delivery_id, current.value, target.value)
    return updated


def assign(delivery_id: str, user_id: str, strict: bool = False) -> dict:
    """Assign a delivery to a user and force its status to ASSIGNED."""
    if not user_id:
        raise ValidationError("User ID is required")
    delivery = get_document_by_id(COLLECTION, delivery_id)
    current = DeliveryStatus(delivery["status"])

    if strict and not can_transition(current, DeliveryStatus.ASSIGNED):
        raise InvalidTransitionError(current.value, DeliveryStatus.ASSIGNED.value)

    updated = update_document(
        COLLECTION,
        delivery_id,
        {"assigned_to": user_id, "status": DeliveryStatus.ASSIGNED.value},
    )
    logger.info("Delivery %s assigned to user %s", delivery_id, user_id)
    return updated
