"""Receipt model for tracking receipt uploads and extraction results."""

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.enums import ReceiptStatus
from src.models.mixins import TimestampMixin


class Receipt(Base, TimestampMixin):
    """A receipt photo uploaded for a visit and the data extracted from it."""

    __tablename__ = "receipts"

    id = Column(Integer, primary_key=True, index=True)
    visit_id = Column(Integer, ForeignKey("visits.id"), nullable=False, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False, index=True)
    uploaded_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    uploaded_by_role = Column(String(20), nullable=False)  # consumer, business
    status = Column(String(20), nullable=False, default=ReceiptStatus.PENDING.value)

    # ReceiptData in its camelCase wire form
    extracted_data = Column(JSON, nullable=True)
    confidence = Column(Float, nullable=True)
    error = Column(Text, nullable=True)

    processed_at = Column(DateTime(timezone=True), nullable=True)

    visit = relationship("Visit", backref="receipts")
