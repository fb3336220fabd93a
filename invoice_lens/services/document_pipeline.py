"""
End-to-end processing of one uploaded document.

    upload -> page images -> per-page extraction (sequential, retried)
           -> merge in page order -> history entry

Pages are extracted one after another; the next page only starts once
the previous one has succeeded or used up its retries. What happens
when a page fails for good is configuration: ``skip`` records it as a
failed page and carries on, ``abort`` lets the error end the job.
"""

import io
from pathlib import Path
from typing import Callable, Literal, Optional

from loguru import logger
from PIL import Image, UnidentifiedImageError

from ..core.config import settings
from ..core.errors import DocumentExtractionError, ExtractionError, InputError, UnsupportedFileTypeError
from .extraction_client import ExtractionClient
from .image_prep import IMAGE_SUFFIXES, prepare_image
from .invoice_types import HistoryEntry
from .page_merger import PageResult, merge_page_results
from .pdf_rasterizer import PdfRasterizer
from .storage.history import HistoryStore
from .storage.result_cache import ResultCache, file_hash

PageFailurePolicy = Literal["skip", "abort"]


def is_pdf(filename: str, content: bytes, content_type: Optional[str]) -> bool:
    return (
        content_type == "application/pdf"
        or Path(filename).suffix.lower() == ".pdf"
        or content.startswith(b"%PDF")
    )


def is_image(filename: str, content: bytes, content_type: Optional[str]) -> bool:
    if content_type and content_type.startswith("image/"):
        return True
    if Path(filename).suffix.lower() in IMAGE_SUFFIXES:
        return True
    # Raw uploads may carry neither a name nor an image content type
    try:
        with Image.open(io.BytesIO(content)):
            return True
    except UnidentifiedImageError:
        return False


def progress_message(page: int, page_count: int) -> str:
    if page_count > 1:
        return f"Processing page {page} of {page_count}"
    return "Processing your invoice..."


class DocumentPipeline:
    def __init__(
        self,
        history: HistoryStore,
        client: Optional[ExtractionClient] = None,
        rasterizer: Optional[PdfRasterizer] = None,
        cache: Optional[ResultCache] = None,
        page_failure_policy: Optional[PageFailurePolicy] = None,
    ):
        self.history = history
        self.client = client or ExtractionClient()
        self.rasterizer = rasterizer or PdfRasterizer()
        self.cache = cache or ResultCache(settings.result_cache_ttl_seconds)
        self.page_failure_policy = page_failure_policy or settings.page_failure_policy

    def load_pages(
        self, filename: str, content: bytes, content_type: Optional[str] = None
    ) -> tuple[list[bytes], str]:
        """Turn an upload into page images; returns (pages, media type)."""
        if not content:
            raise InputError("No file provided", {"filename": filename})
        if is_pdf(filename, content, content_type):
            return self.rasterizer.render_pages(content, filename), "image/png"
        if is_image(filename, content, content_type):
            image, media_type = prepare_image(content, filename)
            return [image], media_type
        raise UnsupportedFileTypeError(filename, content_type)

    async def extract_pages(
        self, pages: list[bytes], on_progress: Optional[Callable[[str], None]] = None
    ) -> list[PageResult]:
        results: list[PageResult] = []
        for number, page in enumerate(pages, start=1):
            message = progress_message(number, len(pages))
            page_progress = None
            if on_progress:
                on_progress(message)

                # Model-side progress markers are reported as the page message
                def page_progress(_fragment: str, message: str = message) -> None:
                    on_progress(message)
            try:
                results.append(await self.client.extract_page(page, page_progress))
            except ExtractionError as e:
                if self.page_failure_policy == "abort":
                    logger.error("Page failed, aborting document", page=number, error=e.message)
                    raise
                logger.warning("Page failed, continuing with remaining pages", page=number, error=e.message)
                results.append(None)
        return results

    async def process(
        self,
        filename: str,
        content: bytes,
        content_type: Optional[str] = None,
        on_progress: Optional[Callable[[str], None]] = None,
    ) -> HistoryEntry:
        """
        Extract, merge and record one document.

        Raises:
            InputError: empty, unsupported or unreadable upload.
            ExtractionError: a page failed and the policy is ``abort``.
            DocumentExtractionError: no page produced any field.
        """
        digest = file_hash(content) if content else None
        cached = self.cache.get(digest) if digest and self.cache.enabled else None
        if cached:
            logger.info("Using cached extraction result", filename=filename, sha256=digest)
            return self.history.record(
                cached.record, filename, cached.page_images, cached.page_media_type
            )

        pages, media_type = self.load_pages(filename, content, content_type)
        logger.info("Processing document", filename=filename, pages=len(pages))

        results = await self.extract_pages(pages, on_progress)
        merged = merge_page_results(results)
        if merged.is_empty():
            failed = sum(result is None for result in results)
            logger.error("No data extracted from document", filename=filename, failed_pages=failed)
            raise DocumentExtractionError(details={"filename": filename, "failed_pages": failed})

        self.cache.put(digest, merged, pages, media_type)
        entry = self.history.record(merged, filename, pages, media_type)
        logger.info(
            "Document extracted",
            filename=filename,
            entry_id=entry.id,
            pages=entry.page_count,
            failed_pages=sum(result is None for result in results),
        )
        return entry
