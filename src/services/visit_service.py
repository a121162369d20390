"""Visit service: creation with a check-in token, and QR check-in redemption."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import NoReturn

from fastapi import HTTPException, status
from sqlalchemy import update
from sqlalchemy.orm import Session

from src.models.business import Business
from src.models.enums import VisitStatus
from src.models.user import User
from src.models.visit import Visit
from src.services.check_in_tokens import TokenService, get_token_service

logger = logging.getLogger(__name__)

# Same message for unknown visit, wrong token, expired or already used token
INVALID_TOKEN_DETAIL = "Invalid or expired check-in token"


@dataclass(frozen=True)
class CreatedVisit:
    """A new visit plus the one-time token material for its QR code."""

    visit: Visit
    check_in_token: str
    check_in_url: str
    expires_at: datetime


class VisitService:
    """Service for visit check-in operations."""

    def __init__(self, db: Session, token_service: TokenService | None = None):
        self.db = db
        self.tokens = token_service or get_token_service()

    def create_visit(self, business_id: int, consumer: User) -> CreatedVisit:
        """Create a visit and mint its check-in token.

        The plaintext token is returned here and nowhere else; only its hash
        is stored on the visit.
        """
        business = self.db.query(Business).filter(Business.id == business_id).first()
        if not business:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Business not found",
            )

        issued = self.tokens.issue()
        visit = Visit(
            business_id=business.id,
            consumer_user_id=consumer.id,
            status=VisitStatus.CREATED.value,
            check_in_token_hash=issued.token_hash,
            check_in_token_expiry=issued.expires_at,
            check_in_token_used=False,
        )
        self.db.add(visit)
        self.db.commit()
        self.db.refresh(visit)

        logger.info(f"Created visit {visit.id} for business {business.id}")
        return CreatedVisit(
            visit=visit,
            check_in_token=issued.plaintext,
            check_in_url=self.tokens.build_redemption_url(visit.id, issued.plaintext),
            expires_at=issued.expires_at,
        )

    def get_visit_for_user(self, visit_id: int, user: User) -> Visit:
        """Get a visit visible to its consumer or the business owner."""
        visit = self.db.query(Visit).filter(Visit.id == visit_id).first()
        if not visit or user.id not in (visit.consumer_user_id, visit.business.owner_user_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Visit not found",
            )
        return visit

    def days_remaining(self, visit: Visit) -> int | None:
        """Days left on the visit's QR code, for display."""
        if visit.check_in_token_used or visit.check_in_token_expiry is None:
            return None
        return self.tokens.days_remaining(visit.check_in_token_expiry)

    def redeem_check_in(self, visit_id: int, token: str, owner: User) -> Visit:
        """Confirm a visit by redeeming its QR token.

        The token is checked first so callers without a valid token learn
        nothing about the visit. The final update only matches while the
        stored hash is still present and unused, so two concurrent
        redemptions of one token cannot both succeed.
        """
        visit = self.db.query(Visit).filter(Visit.id == visit_id).first()
        if not visit:
            self._reject(visit_id, "visit not found")

        if not VisitStatus(visit.status).can_check_in() or visit.check_in_token_used:
            self._reject(visit_id, f"visit is {visit.status}")

        if self.tokens.is_expired(visit.check_in_token_expiry):
            self._reject(visit_id, "token expired")

        stored_hash = visit.check_in_token_hash
        if not self.tokens.verify(token, stored_hash, visit.check_in_token_expiry):
            self._reject(visit_id, "token mismatch")

        if visit.business.owner_user_id != owner.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the business owner can perform check-ins",
            )

        result = self.db.execute(
            update(Visit)
            .where(
                Visit.id == visit_id,
                Visit.status == VisitStatus.CREATED.value,
                Visit.check_in_token_used.is_(False),
                Visit.check_in_token_hash == stored_hash,
            )
            .values(
                status=VisitStatus.CHECKED_IN.value,
                check_in_token_used=True,
                check_in_token_hash=None,
                checked_in_at=self.tokens.now(),
                check_in_by_user_id=owner.id,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            self._reject(visit_id, "token already redeemed")

        self.db.commit()
        self.db.refresh(visit)
        logger.info(f"Visit {visit_id} checked in by user {owner.id}")
        return visit

    def _reject(self, visit_id: int, reason: str) -> NoReturn:
        logger.info(f"Rejected check-in for visit {visit_id}: {reason}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=INVALID_TOKEN_DETAIL,
        )
