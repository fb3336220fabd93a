"""
Folds per-page extraction results into one record for the document.

Pages are applied in page order and a page overwrites a field whenever
it has a value for it, so the last page that mentions a field wins.
Failed pages (None) contribute nothing, and a page can never reset a
field back to absent.
"""

from typing import Any, Iterable, Mapping, Optional, Union

from loguru import logger

from .field_schema import FIELD_KEYS
from .invoice_types import ExtractedRecord

PageResult = Optional[ExtractedRecord]
PageInput = Union[ExtractedRecord, Mapping[str, Any], None]


def _as_record(page: Union[ExtractedRecord, Mapping[str, Any]]) -> ExtractedRecord:
    if isinstance(page, ExtractedRecord):
        return page
    return ExtractedRecord.from_mapping(page)


def _join(texts: list[str]) -> Optional[str]:
    return "\n\n".join(texts) if texts else None


def merge_page_results(pages: Iterable[PageInput]) -> ExtractedRecord:
    """
    Merge page results in order.

    Example:
        >>> merged = merge_page_results([
        ...     {"invoiceNumber": "A", "currency": "not available"},
        ...     {"invoiceNumber": "not available", "currency": "USD"},
        ... ])
        >>> merged.invoice_number, merged.currency
        ('A', 'USD')
    """
    merged: dict[str, Optional[str]] = {key.attr: None for key in FIELD_KEYS}
    additional: list[str] = []
    full_texts: list[str] = []

    for index, page in enumerate(pages, start=1):
        if page is None:
            logger.debug("Skipping failed page", page=index)
            continue
        record = _as_record(page)
        for key in FIELD_KEYS:
            value = record.get(key)
            if value is not None:
                merged[key.attr] = value
        if record.additional_information:
            additional.append(record.additional_information)
        if record.full_text:
            full_texts.append(record.full_text)

    return ExtractedRecord(
        **merged,
        additional_information=_join(additional),
        full_text=_join(full_texts),
    )
