"""Validation of receipt extraction responses from the vision model.

The model is asked for a JSON object (see ``receipt_prompts``) but its reply is
untrusted: it may be fenced in markdown, malformed, or carry string-typed
amounts. ``extract_receipt`` coerces what it can and never repairs or infers
missing data.
"""

import json
import logging
import math
import re
from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"
DEFAULT_CONFIDENCE = 0.5
PARSE_ERROR_CODE = "PARSE_ERROR"

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)

_TEXT_FIELDS = (
    "store_name",
    "store_address",
    "payment_method",
    "last_four_digits",
    "receipt_number",
)
_NUMBER_FIELDS = ("total_amount", "subtotal", "tax", "tip")


class DomainErrorKind(StrEnum):
    """Reasons the model gives for refusing to extract."""

    NOT_A_RECEIPT = "NOT_A_RECEIPT"
    UNREADABLE = "UNREADABLE"


class ReceiptItem(BaseModel):
    """A line item on a receipt."""

    model_config = ConfigDict(frozen=True)

    name: str
    quantity: float | None = None
    price: float | None = None


class ReceiptData(BaseModel):
    """Structured receipt fields. Absent means not determinable from the image."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    store_name: str | None = None
    store_address: str | None = None
    date: str | None = None
    total_amount: float | None = None
    subtotal: float | None = None
    tax: float | None = None
    tip: float | None = None
    payment_method: str | None = None
    last_four_digits: str | None = None
    items: list[ReceiptItem] | None = None
    currency: str = Field(default=DEFAULT_CURRENCY)
    receipt_number: str | None = None

    def to_wire(self) -> dict[str, Any]:
        """camelCase dict without absent fields, for storage and API responses."""
        return self.model_dump(by_alias=True, exclude_none=True)


@dataclass(frozen=True)
class ExtractionSuccess:
    data: ReceiptData
    confidence: float

    @property
    def error_code(self) -> None:
        return None


@dataclass(frozen=True)
class ExtractionDomainError:
    """The image was not a receipt or could not be read. Re-capture, don't retry."""

    kind: DomainErrorKind
    detail: str | None = None
    confidence: float = 0.0

    @property
    def error_code(self) -> str:
        return self.kind.value


@dataclass(frozen=True)
class ExtractionParseError:
    """The reply was not a JSON object. Retrying the model may help."""

    reason: str
    confidence: float = 0.0

    @property
    def error_code(self) -> str:
        return PARSE_ERROR_CODE


ExtractionOutcome = ExtractionSuccess | ExtractionDomainError | ExtractionParseError


def unwrap_fence(raw_text: str) -> str:
    """Return the content of the first fenced code block, or the text itself."""
    match = _FENCE_RE.search(raw_text)
    if match:
        return match.group(1).strip()
    return raw_text.strip()


def _reject_constant(name: str) -> float:
    raise ValueError(f"Non-finite number {name} is not allowed")


def _number(value: Any) -> float | None:
    # bool is an int subclass but never a valid amount
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    # literals like 1e400 parse to inf without reaching parse_constant
    return number if math.isfinite(number) else None


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _iso_date(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()).isoformat()
    except ValueError:
        return None


def _item_name(value: Any) -> str:
    if isinstance(value, str):
        return value
    number = _number(value)
    if not number:
        return ""
    return str(int(number)) if number.is_integer() else str(number)


def _item(raw: Any) -> ReceiptItem:
    if not isinstance(raw, dict):
        return ReceiptItem(name="")
    return ReceiptItem(
        name=_item_name(raw.get("name")),
        quantity=_number(raw.get("quantity")),
        price=_number(raw.get("price")),
    )


def _domain_error(value: Any) -> ExtractionDomainError:
    try:
        kind = DomainErrorKind(value)
    except ValueError:
        logger.warning(f"Unrecognized extraction error {value!r}, treating as unreadable")
        return ExtractionDomainError(kind=DomainErrorKind.UNREADABLE, detail=str(value))
    return ExtractionDomainError(kind=kind)


def _confidence(value: Any) -> float:
    number = _number(value)
    if number is None:
        return DEFAULT_CONFIDENCE
    return min(max(number, 0.0), 1.0)


def extract_receipt(raw_text: str) -> ExtractionOutcome:
    """Turn a raw model reply into an extraction outcome.

    Args:
        raw_text: The text the vision model returned

    Returns:
        ExtractionSuccess with coerced fields and confidence,
        ExtractionDomainError when the reply carries an ``error`` field, or
        ExtractionParseError when the reply is not a JSON object
    """
    payload = unwrap_fence(raw_text)
    try:
        parsed = json.loads(payload, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as e:
        logger.warning(f"Failed to parse receipt response as JSON: {e}")
        return ExtractionParseError(reason=str(e))

    if not isinstance(parsed, dict):
        logger.warning(f"Receipt response is a JSON {type(parsed).__name__}, expected an object")
        return ExtractionParseError(reason=f"Expected a JSON object, got {type(parsed).__name__}")

    if parsed.get("error"):
        return _domain_error(parsed["error"])

    fields: dict[str, Any] = {}
    for field in _TEXT_FIELDS:
        fields[field] = _text(parsed.get(to_camel(field)))
    for field in _NUMBER_FIELDS:
        fields[field] = _number(parsed.get(to_camel(field)))

    items = parsed.get("items")
    currency = parsed.get("currency")
    data = ReceiptData(
        **fields,
        date=_iso_date(parsed.get("date")),
        items=[_item(item) for item in items] if isinstance(items, list) else None,
        currency=currency if isinstance(currency, str) and currency else DEFAULT_CURRENCY,
    )
    return ExtractionSuccess(data=data, confidence=_confidence(parsed.get("confidence")))
