"""Business model."""

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.mixins import TimestampMixin


class Business(Base, TimestampMixin):
    """A business that receives referred visits and performs check-ins."""

    __tablename__ = "businesses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    owner_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    owner = relationship("User", backref="businesses")
