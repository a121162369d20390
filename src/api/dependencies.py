"""FastAPI dependencies for authentication and services."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from src.database import get_db
from src.models.user import User
from src.services.auth import decode_access_token
from src.services.check_in_tokens import TokenService, get_token_service
from src.services.visit_service import VisitService

security = HTTPBearer()


def _credentials_error(detail: str = "Invalid authentication credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> User:
    """Get the current authenticated user from JWT token."""
    payload = decode_access_token(credentials.credentials)
    if payload is None or payload.get("sub") is None:
        raise _credentials_error()

    user = db.query(User).filter(User.id == int(payload["sub"])).first()
    if user is None:
        raise _credentials_error("User not found")

    return user


def get_visit_service(
    db: Annotated[Session, Depends(get_db)],
    token_service: Annotated[TokenService, Depends(get_token_service)],
) -> VisitService:
    """Get visit service with dependencies."""
    return VisitService(db, token_service)
