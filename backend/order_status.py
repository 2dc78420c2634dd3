from typing import Dict, FrozenSet, Optional

ORDER_STATUSES = ("pending", "confirmed", "printed", "shipped", "delivered", "cancelled")
DEFAULT_ORDER_STATUS = "pending"

ORDER_STATUS_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "pending": frozenset({"confirmed", "cancelled"}),
    "confirmed": frozenset({"printed", "cancelled"}),
    "printed": frozenset({"shipped", "cancelled"}),
    "shipped": frozenset({"delivered"}),
    "delivered": frozenset(),
    "cancelled": frozenset(),
}

STATUS_MESSAGES = {
    "confirmed": "Order confirmed! Your NFC card will be printed soon.",
    "printed": "Your NFC card has been printed and is ready for shipping!",
    "shipped": "Your NFC card has been shipped! You will receive it soon.",
    "delivered": "Order delivered successfully! Thank you for your business.",
}


def is_known_status(status: Optional[str]) -> bool:
    return status in ORDER_STATUS_TRANSITIONS


def can_transition(current: Optional[str], requested: str) -> bool:
    allowed = ORDER_STATUS_TRANSITIONS.get(current or DEFAULT_ORDER_STATUS, frozenset())
    return requested in allowed


def status_timestamp_field(status: str) -> str:
    return f"{status}At"


def status_message(status: str) -> str:
    return STATUS_MESSAGES.get(status, f"Order status updated to {status}")
