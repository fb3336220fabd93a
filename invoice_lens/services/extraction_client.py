"""
Per-page extraction against the vision model, with retries.

One call sends one page image, streams the answer back, cleans and
parses it, and checks that something usable came out. Any
``ExtractionError`` (transport failure, empty stream, nothing parseable)
is retried up to ``max_attempts`` times in total with a fixed delay in
between; the last error is re-raised once attempts run out.
"""

import asyncio
import base64
from typing import Awaitable, Callable, Optional, Union

from loguru import logger

from ..core.config import settings
from ..core.errors import EmptyResponseError, ExtractionError, UnparseableResponseError
from .invoice_types import ExtractedRecord
from .ollama_stream import CHAT_FRAGMENT_PATH, OllamaStream
from .response_parser import clean_response, parse_invoice_response

ProgressCallback = Callable[[str], None]
PROGRESS_MARKER = "Processing"

EXTRACTION_PROMPT = """You are a precise invoice data extractor. First, identify the currency from any currency symbols (₹,$,€,£) or currency names in the invoice. Then extract ALL text from the invoice image, including every detail you can see. Organize the information into two parts:

Part 1 - Required Fields (format exactly as shown, DO NOT add currency symbols to amounts):
Invoice number: [exact value or "not available"]
Invoice Date: [DD/MM/YYYY or "not available"]
Invoice Amount: [number only without currency symbol, e.g. "200000.00" or "not available"]
Currency: [Use format: "₹ (Indian Rupee)" for INR, "$ (US Dollar)" for USD, "€ (Euro)" for EUR, "£ (British Pound)" for GBP]
Legal Entity Name: [exact name or "not available"]
Legal Entity Address: [full address or "not available"]
Vendor Name: [exact name or "not available"]
Vendor Address: [full address or "not available"]
Payment Terms: [exact terms or "not available"]
Payment Method: [exact method or "not available"]
VAT ID: [exact number or "not available"]
GL Account Number: [exact number or "not available"]
Bank Account Number: [exact number or "not available"]

Part 2 - Additional Information:
[List ALL other information found in the invoice, including but not limited to:
- Line items and their details
- Tax breakdowns
- Shipping information
- Contact details
- Terms and conditions
- Notes or comments
- Any other text or numbers visible in the invoice]

Format Part 2 as a clear, structured list of all additional information found."""


def clean_base64(image: Union[bytes, str]) -> str:
    """
    Return the image as bare, padded base64.

    Raw bytes are encoded; strings lose surrounding whitespace and any
    ``data:image/png;base64,`` prefix, and get '=' padding to a multiple of 4.
    """
    if isinstance(image, (bytes, bytearray)):
        return base64.b64encode(image).decode("ascii")
    encoded = image.strip()
    if "," in encoded:
        encoded = encoded.split(",", 1)[1]
    return encoded + "=" * (-len(encoded) % 4)


class ExtractionClient:
    """
    Extracts one page at a time.

    Example:
        >>> client = ExtractionClient()
        >>> record = await client.extract_page(png_bytes)
        >>> record.invoice_number
        'INV-001'
    """

    def __init__(
        self,
        stream: Optional[OllamaStream] = None,
        model: Optional[str] = None,
        max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.stream = stream or OllamaStream()
        self.model = model or settings.ollama_model
        self.max_attempts = max_attempts or settings.extraction_max_attempts
        self.retry_delay = (
            retry_delay if retry_delay is not None else settings.extraction_retry_delay_ms / 1000
        )
        self._sleep = sleep

    def build_request(self, image_b64: str) -> dict:
        return {
            "model": self.model,
            "messages": [{
                "role": "user",
                "content": EXTRACTION_PROMPT,
                "images": [image_b64],
            }],
            "stream": True,
            "options": {
                "temperature": settings.extraction_temperature,
                "max_tokens": settings.extraction_max_tokens,
            },
        }

    async def _attempt(self, image_b64: str, on_progress: Optional[ProgressCallback]) -> ExtractedRecord:
        full_text = ""
        async for fragment in self.stream.iter_fragments(
            settings.ollama_chat_path, self.build_request(image_b64), CHAT_FRAGMENT_PATH
        ):
            full_text += fragment
            if on_progress and PROGRESS_MARKER in fragment:
                on_progress(fragment)

        if not full_text.strip():
            raise EmptyResponseError()

        logger.debug("Raw extracted text", text=full_text)
        cleaned = clean_response(full_text)

        if ":" not in cleaned:
            raise UnparseableResponseError("Invalid response format from model - no fields found")

        record = parse_invoice_response(cleaned)
        if record.is_empty():
            raise UnparseableResponseError("Failed to extract any information from the image")

        return record.model_copy(update={"full_text": cleaned})

    async def extract_page(
        self, image: Union[bytes, str], on_progress: Optional[ProgressCallback] = None
    ) -> ExtractedRecord:
        """
        Extract one page image, retrying failed attempts.

        Raises:
            ExtractionError: the last failure once all attempts are used.
        """
        image_b64 = clean_base64(image)
        attempt = 0
        while True:
            attempt += 1
            try:
                record = await self._attempt(image_b64, on_progress)
                logger.info("Page extracted", attempt=attempt)
                return record
            except ExtractionError as e:
                logger.warning(
                    "Extraction attempt failed",
                    error=e.message,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                )
                if attempt >= self.max_attempts:
                    raise
                logger.info("Retrying extraction", delay_seconds=self.retry_delay)
                await self._sleep(self.retry_delay)

    async def try_extract_page(
        self, image: Union[bytes, str], on_progress: Optional[ProgressCallback] = None
    ) -> Optional[ExtractedRecord]:
        """Like ``extract_page`` but reports exhaustion as None (a failed page)."""
        try:
            return await self.extract_page(image, on_progress)
        except ExtractionError:
            return None
