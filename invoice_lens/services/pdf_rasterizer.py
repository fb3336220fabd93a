"""
Renders PDF pages to PNG images for the vision model.

Uses PyMuPDF; pages are rendered at a fixed zoom (2.0 by default, i.e.
144 DPI) which keeps small print legible without bloating the request.
"""

import fitz  # PyMuPDF
from loguru import logger

from ..core.config import settings
from ..core.errors import CorruptedFileError


class PdfRasterizer:
    """
    Example:
        >>> rasterizer = PdfRasterizer()
        >>> pages = rasterizer.render_pages(pdf_bytes)
        >>> len(pages) == rasterizer.page_count(pdf_bytes)
        True
    """

    def __init__(self, scale: float | None = None):
        self.scale = scale or settings.pdf_render_scale

    def _open(self, pdf_bytes: bytes, filename: str):
        try:
            return fitz.open(stream=pdf_bytes, filetype="pdf")
        except Exception as e:
            logger.error(f"PDF could not be opened: {e}")
            raise CorruptedFileError(filename, str(e)) from e

    def page_count(self, pdf_bytes: bytes, filename: str = "document.pdf") -> int:
        with self._open(pdf_bytes, filename) as doc:
            return doc.page_count

    def render_pages(self, pdf_bytes: bytes, filename: str = "document.pdf") -> list[bytes]:
        """Render every page to PNG bytes, in page order."""
        matrix = fitz.Matrix(self.scale, self.scale)
        pages = []
        with self._open(pdf_bytes, filename) as doc:
            for page in doc:
                pix = page.get_pixmap(matrix=matrix)
                pages.append(pix.tobytes("png"))
        if not pages:
            raise CorruptedFileError(filename, "PDF has no pages")
        logger.info("Rendered PDF pages", filename=filename, pages=len(pages), scale=self.scale)
        return pages
