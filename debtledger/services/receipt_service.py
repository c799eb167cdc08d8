import base64
import json
import logging
from typing import Dict, List, Optional

import requests
from pydantic import ValidationError

from debtledger.core.config import Settings
from debtledger.core.errors import ReceiptExtractionError
from debtledger.schemas.receipt import ReceiptData

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

RECEIPT_PROMPT = """
Analyze this receipt image. Extract the bill details.
I need the list of items purchased, their individual prices, quantities, subtotal, tax, service charge, and the final total.
If tax or service charge is not explicitly stated but there is a difference between sum of items and total, categorize it as tax.
Return the data in JSON format.
"""

RECEIPT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "items": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "name": {"type": "STRING"},
                    "price": {"type": "NUMBER"},
                    "quantity": {"type": "NUMBER"}
                }
            }
        },
        "subtotal": {"type": "NUMBER"},
        "tax": {"type": "NUMBER"},
        "serviceCharge": {"type": "NUMBER"},
        "total": {"type": "NUMBER"}
    }
}


def strip_data_url(image_base64: str) -> str:
    """Drop a ``data:image/...;base64,`` header if present."""
    if "," in image_base64 and image_base64.startswith("data:"):
        return image_base64.split(",", 1)[1]
    return image_base64


class ReceiptExtractor:
    """Turns a receipt photo into itemized amounts via the Gemini API."""

    def __init__(self, api_key: str, model: str, timeout: int = 120, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReceiptExtractor":
        return cls(settings.GEMINI_API_KEY, settings.GEMINI_MODEL, settings.GEMINI_TIMEOUT_SECONDS)

    def close(self) -> None:
        self.session.close()

    def extract(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> ReceiptData:
        encoded = base64.b64encode(image_bytes).decode("utf-8")
        return self.extract_base64(encoded, mime_type)

    def extract_base64(self, image_base64: str, mime_type: str = "image/jpeg") -> ReceiptData:
        """
        Extract receipt data from a base64 image.

        Raises ReceiptExtractionError when the key is missing, the API call
        fails, or the answer is not the expected JSON.
        """
        if not self.api_key:
            raise ReceiptExtractionError("GEMINI_API_KEY not configured on server")

        parts = [
            {"inlineData": {"mimeType": mime_type, "data": strip_data_url(image_base64)}},
            {"text": RECEIPT_PROMPT},
        ]
        text = self._generate_content(parts)
        if not text:
            raise ReceiptExtractionError("No response from Gemini")

        try:
            return ReceiptData.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.error("Unreadable receipt extraction: %s", text[:200])
            raise ReceiptExtractionError(f"Could not parse receipt data: {exc}") from exc

    def _generate_content(self, parts: List[Dict]) -> str:
        payload = {
            "contents": [
                {
                    "role": "user",
                    "parts": parts
                }
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RECEIPT_SCHEMA
            }
        }

        try:
            response = self.session.post(
                GEMINI_URL.format(model=self.model),
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout
            )
        except requests.RequestException as exc:
            logger.error("Gemini request failed: %s", exc)
            raise ReceiptExtractionError(f"Gemini API request failed: {exc}") from exc

        if response.status_code != 200:
            logger.error("Gemini returned %s", response.status_code)
            raise ReceiptExtractionError(f"Gemini API request failed: {response.text}")

        try:
            data = response.json()
        except ValueError as exc:
            raise ReceiptExtractionError("Gemini API returned a non-JSON body") from exc
        candidates = data.get("candidates", [])
        if not candidates:
            return ""

        content = candidates[0].get("content", {})
        parts_out = content.get("parts", [])
        return "".join(part.get("text", "") for part in parts_out if isinstance(part, dict))
