"""Pydantic schemas for API requests and responses."""

from src.schemas.auth import AuthResponse, UserLogin, UserRegister, UserResponse
from src.schemas.business import BusinessCreate, BusinessResponse
from src.schemas.receipt import ReceiptResponse, ReceiptScanCreateResponse
from src.schemas.visit import CheckInRequest, VisitCreate, VisitCreateResponse, VisitResponse

__all__ = [
    "UserRegister",
    "UserLogin",
    "UserResponse",
    "AuthResponse",
    "BusinessCreate",
    "BusinessResponse",
    "VisitCreate",
    "VisitResponse",
    "VisitCreateResponse",
    "CheckInRequest",
    "ReceiptResponse",
    "ReceiptScanCreateResponse",
]
