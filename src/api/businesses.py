"""Business API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_user
from src.database import get_db
from src.models.business import Business
from src.models.user import User
from src.schemas.business import BusinessCreate, BusinessResponse

router = APIRouter(prefix="/api/v1/businesses", tags=["businesses"])


@router.post("", response_model=BusinessResponse, status_code=status.HTTP_201_CREATED)
def create_business(
    business_data: BusinessCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Register a business owned by the current user."""
    business = Business(name=business_data.name, owner_user_id=current_user.id)
    db.add(business)
    db.commit()
    db.refresh(business)
    return business


@router.get("", response_model=list[BusinessResponse])
def list_businesses(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """List businesses owned by the current user."""
    return (
        db.query(Business)
        .filter(Business.owner_user_id == current_user.id)
        .order_by(Business.created_at.desc())
        .all()
    )
