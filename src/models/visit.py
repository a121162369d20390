"""Visit model with QR check-in token state."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.enums import VisitStatus
from src.models.mixins import TimestampMixin


class Visit(Base, TimestampMixin):
    """A consumer's visit to a business.

    Only the SHA-256 hash of the check-in token is stored. The hash is cleared
    when the token is redeemed so the same QR code cannot be replayed.
    """

    __tablename__ = "visits"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False, index=True)
    consumer_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=VisitStatus.CREATED.value)

    # QR check-in
    check_in_token_hash = Column(String(64), nullable=True)
    check_in_token_expiry = Column(DateTime(timezone=True), nullable=True)
    check_in_token_used = Column(Boolean, nullable=False, default=False)
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    check_in_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    business = relationship("Business", backref="visits")
    consumer = relationship("User", foreign_keys=[consumer_user_id])
