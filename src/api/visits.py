"""Visit and QR check-in API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from src.api.dependencies import get_current_user, get_visit_service
from src.models.user import User
from src.models.visit import Visit
from src.schemas.visit import CheckInRequest, VisitCreate, VisitCreateResponse, VisitResponse
from src.services.visit_service import VisitService

router = APIRouter(prefix="/api/v1/visits", tags=["visits"])


def _visit_response(visit: Visit, service: VisitService) -> VisitResponse:
    response = VisitResponse.model_validate(visit)
    return response.model_copy(update={"days_remaining": service.days_remaining(visit)})


@router.post("", response_model=VisitCreateResponse, status_code=status.HTTP_201_CREATED)
def create_visit(
    visit_data: VisitCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[VisitService, Depends(get_visit_service)],
):
    """Create a visit and return its one-time check-in QR URL.

    The token is not retrievable later; the client must render the QR code
    from this response.
    """
    created = service.create_visit(visit_data.business_id, current_user)
    return VisitCreateResponse(
        visit=_visit_response(created.visit, service),
        check_in_token=created.check_in_token,
        check_in_url=created.check_in_url,
        expires_at=created.expires_at,
    )


@router.get("/{visit_id}", response_model=VisitResponse)
def get_visit(
    visit_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[VisitService, Depends(get_visit_service)],
):
    """Get a visit, for its consumer or the business owner."""
    visit = service.get_visit_for_user(visit_id, current_user)
    return _visit_response(visit, service)


@router.post("/{visit_id}/check-in", response_model=VisitResponse)
def check_in(
    visit_id: int,
    request: CheckInRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[VisitService, Depends(get_visit_service)],
):
    """Redeem a scanned check-in QR code.

    Unknown visits, wrong tokens, expired tokens and already used tokens all
    get the same 400 response.
    """
    visit = service.redeem_check_in(visit_id, request.token, current_user)
    return _visit_response(visit, service)
