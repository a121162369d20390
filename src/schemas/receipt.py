"""Receipt schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class ReceiptResponse(BaseModel):
    """A receipt and its extraction result.

    ``extracted_data`` uses the camelCase field names of ReceiptData.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    visit_id: int
    business_id: int
    uploaded_by_user_id: int
    uploaded_by_role: str
    status: str
    extracted_data: dict[str, Any] | None = None
    confidence: float | None = None
    error: str | None = None
    processed_at: datetime | None = None
    created_at: datetime


class ReceiptScanCreateResponse(BaseModel):
    """Response when uploading a receipt for scanning."""

    id: int
    status: str
    message: str
