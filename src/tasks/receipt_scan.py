"""Celery task for receipt scanning."""

import asyncio
import base64
import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from src.celery_app import app as celery_app
from src.database import SessionLocal
from src.models.enums import ReceiptStatus
from src.models.receipt import Receipt
from src.services.receipt_extraction import ExtractionSuccess, extract_receipt
from src.services.receipt_service import ReceiptService

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 300


def _fail(db: Session, receipt: Receipt, error: str) -> dict:
    receipt.status = ReceiptStatus.FAILED.value
    receipt.error = error
    receipt.processed_at = datetime.now(UTC)
    db.commit()
    return {"status": receipt.status, "error": error}


def process_receipt(
    db: Session,
    receipt_id: int,
    image_data: bytes,
    media_type: str,
    service: ReceiptService | None = None,
) -> dict:
    """Extract a receipt's data and record the outcome on the receipt row.

    Upstream failures (API not configured, HTTP errors, empty replies) are
    stored as ``AI_EXTRACTION_FAILED``. A reply that is not a receipt or
    cannot be parsed is stored with its error code.
    """
    receipt = db.query(Receipt).filter(Receipt.id == receipt_id).first()
    if not receipt:
        logger.error(f"Receipt {receipt_id} not found")
        return {"error": "Receipt not found"}

    receipt.status = ReceiptStatus.PROCESSING.value
    db.commit()

    service = service or ReceiptService()
    try:
        # Run async function in sync context
        response_text = asyncio.run(service.request_extraction(image_data, media_type))
    except Exception as e:
        logger.error(f"Receipt extraction request failed for {receipt_id}: {e}")
        return _fail(db, receipt, f"AI_EXTRACTION_FAILED: {str(e)[:MAX_ERROR_LENGTH]}")

    outcome = extract_receipt(response_text)
    if not isinstance(outcome, ExtractionSuccess):
        logger.info(f"Receipt {receipt_id} extraction failed: {outcome.error_code}")
        return _fail(db, receipt, outcome.error_code)

    receipt.status = ReceiptStatus.EXTRACTED.value
    receipt.extracted_data = outcome.data.to_wire()
    receipt.confidence = outcome.confidence
    receipt.error = None
    receipt.processed_at = datetime.now(UTC)
    db.commit()

    return {
        "status": receipt.status,
        "confidence": outcome.confidence,
        "extracted_data": receipt.extracted_data,
    }


@celery_app.task(name="tasks.process_receipt_scan")
def process_receipt_scan(receipt_id: int, image_data_b64: str, media_type: str) -> dict:
    """Process an uploaded receipt using Claude Vision.

    Args:
        receipt_id: ID of the Receipt record
        image_data_b64: Base64-encoded image data
        media_type: MIME type of the image

    Returns:
        Dict with processing results
    """
    db = SessionLocal()
    try:
        return process_receipt(db, receipt_id, base64.b64decode(image_data_b64), media_type)
    except Exception as e:
        logger.exception(f"Error processing receipt {receipt_id}")
        db.rollback()
        try:
            receipt = db.query(Receipt).filter(Receipt.id == receipt_id).first()
            if receipt:
                return _fail(db, receipt, str(e)[:MAX_ERROR_LENGTH])
        except Exception as db_error:
            logger.error(f"Failed to update receipt status: {db_error}")
        return {"error": str(e)}
    finally:
        db.close()
