"""Visit and check-in schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class VisitCreate(BaseModel):
    """Create a visit to a business."""

    business_id: int


class VisitResponse(BaseModel):
    """Visit state. Never includes the token or its hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    business_id: int
    consumer_user_id: int
    status: str
    check_in_token_expiry: datetime | None = None
    check_in_token_used: bool
    checked_in_at: datetime | None = None
    check_in_by_user_id: int | None = None
    days_remaining: int | None = None
    created_at: datetime


class VisitCreateResponse(BaseModel):
    """Response when creating a visit.

    ``check_in_token`` and ``check_in_url`` are only ever returned here.
    """

    visit: VisitResponse
    check_in_token: str
    check_in_url: str
    expires_at: datetime


class CheckInRequest(BaseModel):
    """Token scanned from the customer's QR code."""

    token: str = Field(..., min_length=1, max_length=256)
