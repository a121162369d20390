"""SQLAlchemy models."""

from src.models.business import Business
from src.models.receipt import Receipt
from src.models.user import User
from src.models.visit import Visit

__all__ = [
    "User",
    "Business",
    "Visit",
    "Receipt",
]
