"""Enums for model fields."""

from enum import Enum


class VisitStatus(str, Enum):
    """Lifecycle of a referred customer's visit."""

    CREATED = "CREATED"
    CHECKED_IN = "CHECKED_IN"
    CONVERTED = "CONVERTED"
    REJECTED = "REJECTED"

    def can_check_in(self) -> bool:
        """Only freshly created visits accept a check-in."""
        return self == VisitStatus.CREATED


class ReceiptStatus(str, Enum):
    """Processing status of an uploaded receipt."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    EXTRACTED = "EXTRACTED"
    FAILED = "FAILED"


class UploaderRole(str, Enum):
    """Which side of the visit uploaded a receipt."""

    CONSUMER = "consumer"
    BUSINESS = "business"
