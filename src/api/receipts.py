"""Receipt upload and status API endpoints."""

import base64
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_user
from src.config import get_settings
from src.database import get_db
from src.models.enums import ReceiptStatus, UploaderRole
from src.models.receipt import Receipt
from src.models.user import User
from src.models.visit import Visit
from src.schemas.receipt import ReceiptResponse, ReceiptScanCreateResponse
from src.services.receipt_service import ALLOWED_IMAGE_TYPES

router = APIRouter(prefix="/api/v1/receipts", tags=["receipts"])


def _uploader_role(visit: Visit, user: User) -> UploaderRole:
    if visit.consumer_user_id == user.id:
        return UploaderRole.CONSUMER
    if visit.business.owner_user_id == user.id:
        return UploaderRole.BUSINESS
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You can only upload receipts for your own visits",
    )


@router.post(
    "/scan",
    response_model=ReceiptScanCreateResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def scan_receipt(
    file: Annotated[UploadFile, File(description="Receipt image (JPEG, PNG, or WebP)")],
    visit_id: Annotated[int, Form()],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Upload a receipt image for a visit.

    Extraction runs in the background with Claude Vision. Poll
    ``GET /receipts/{id}`` for the result. A visit holds one receipt; a
    failed one may be replaced by uploading again.

    Note: This endpoint must remain async because UploadFile.read() is async.
    """
    from src.tasks.receipt_scan import process_receipt_scan

    settings = get_settings()

    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid file type. Allowed types: {', '.join(sorted(ALLOWED_IMAGE_TYPES))}",
        )

    image_data = await file.read()
    if len(image_data) > settings.receipt_max_bytes:
        max_mb = settings.receipt_max_bytes // (1024 * 1024)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large. Maximum size is {max_mb}MB.",
        )

    visit = db.query(Visit).filter(Visit.id == visit_id).first()
    if not visit:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Visit not found")

    role = _uploader_role(visit, current_user)

    existing = db.query(Receipt).filter(Receipt.visit_id == visit.id).first()
    if existing:
        if existing.status != ReceiptStatus.FAILED.value:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A receipt has already been uploaded for this visit",
            )
        db.delete(existing)
        db.flush()

    receipt = Receipt(
        visit_id=visit.id,
        business_id=visit.business_id,
        uploaded_by_user_id=current_user.id,
        uploaded_by_role=role.value,
        status=ReceiptStatus.PENDING.value,
    )
    db.add(receipt)
    db.commit()
    db.refresh(receipt)

    image_data_b64 = base64.b64encode(image_data).decode("utf-8")
    process_receipt_scan.delay(receipt.id, image_data_b64, file.content_type)

    return ReceiptScanCreateResponse(
        id=receipt.id,
        status=receipt.status,
        message="Receipt uploaded successfully. Processing in background.",
    )


@router.get("/{receipt_id}", response_model=ReceiptResponse)
def get_receipt(
    receipt_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Get the status and extracted data of a receipt."""
    receipt = db.query(Receipt).filter(Receipt.id == receipt_id).first()
    visible = receipt and current_user.id in (
        receipt.visit.consumer_user_id,
        receipt.visit.business.owner_user_id,
    )
    if not visible:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Receipt not found",
        )

    return receipt
