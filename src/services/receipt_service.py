"""Receipt scanning service using Claude Vision."""

import base64
import logging

import anthropic

from src.config import get_settings
from src.services.receipt_prompts import RECEIPT_EXTRACTION_PROMPT

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp"}


class ReceiptService:
    """Service for sending receipt images to Claude Vision."""

    def __init__(self) -> None:
        """Initialize the receipt service."""
        settings = get_settings()
        self.api_key = settings.anthropic_api_key
        self.model = settings.receipt_model
        self._configured = bool(self.api_key)

    @property
    def is_configured(self) -> bool:
        """Check if the Anthropic API is configured."""
        return self._configured

    async def request_extraction(self, image_data: bytes, media_type: str) -> str:
        """Ask Claude Vision to extract receipt fields from an image.

        Args:
            image_data: Raw bytes of the image
            media_type: MIME type (e.g., "image/jpeg", "image/png")

        Returns:
            The model's raw text reply, to be checked by ``extract_receipt``
        """
        if not self.is_configured:
            raise ValueError("Anthropic API not configured")

        image_base64 = base64.standard_b64encode(image_data).decode("utf-8")

        client = anthropic.Anthropic(api_key=self.api_key)
        logger.info(f"Calling Claude Vision with model: {self.model}")

        message = client.messages.create(
            model=self.model,
            max_tokens=2048,
            temperature=0.1,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": media_type,
                                "data": image_base64,
                            },
                        },
                        {
                            "type": "text",
                            "text": RECEIPT_EXTRACTION_PROMPT,
                        },
                    ],
                }
            ],
        )

        text_blocks = [block.text for block in message.content if block.type == "text"]
        if not text_blocks:
            raise ValueError("No text in Claude response")

        response_text = text_blocks[0]
        logger.debug(f"Claude response: {response_text[:500]}")
        return response_text
