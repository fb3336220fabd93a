"""
Turns the vision model's free-text answer into an ExtractedRecord.

The model is asked for a two-part answer: "Part 1" is one ``Label: value``
line per field, "Part 2 - Additional Information:" is everything else it
could read. Formatting is only loosely followed in practice (markdown bold,
numbered lists, alias labels, "N/A" instead of "not available"), so the
text goes through ``clean_response`` first and ``parse_invoice_response``
then resolves each line against the field schema.

Neither function raises: a response with nothing usable parses to an
empty record and the caller decides whether that counts as a failure.
"""

import re
from typing import NamedTuple, Optional

from loguru import logger

from .field_schema import FieldKey, format_amount, resolve_field
from .invoice_types import ExtractedRecord, normalize_value

ADDITIONAL_INFO_MARKER = "Part 2 - Additional Information:"
PREAMBLE_PREFIXES = ("Part 1", "Based on", "Note:")


class Currency(NamedTuple):
    symbol: str
    code: str
    name: str

    @property
    def label(self) -> str:
        """Canonical form written to the currency field, e.g. "€ (Euro)"."""
        return f"{self.symbol} ({self.name})"


# Checked in this order; the first symbol or code found wins
CURRENCIES = (
    Currency("₹", "INR", "Indian Rupee"),
    Currency("$", "USD", "US Dollar"),
    Currency("€", "EUR", "Euro"),
    Currency("£", "GBP", "British Pound"),
)


# =============================================================================
# CLEANING
# =============================================================================

_CODE_FENCE = re.compile(r"^\s*```.*$", re.MULTILINE)
_BOLD = re.compile(r"\*\*")
_HEADER = re.compile(r"^[ \t]*#+[ \t]*", re.MULTILINE)
_TITLE = re.compile(r"^\s*Invoice (?:Information|Analysis|Data Extraction)[ \t]*:?[ \t]*\n?", re.IGNORECASE)
_NUMBERING = re.compile(r"^[ \t]*\d+\.[ \t]*", re.MULTILINE)
_BULLET = re.compile(r"^[ \t]*[*\-][ \t]*", re.MULTILINE)
_BRACKETS = re.compile(r"[\[\]]")
_SPACES = re.compile(r"[ \t]{2,}")


def clean_response(text: str) -> str:
    """
    Strip markdown noise from a raw model response.

    Removes code-fence lines (their content stays), bold markers, headers,
    a leading "Invoice Analysis" style title, list numbering, bullets and
    square brackets; collapses repeated spaces and drops blank lines.
    "Note:" lines are left for the parser, which ignores them among the
    fields and keeps them in the additional information.
    """
    text = _CODE_FENCE.sub("", text)
    text = _BOLD.sub("", text)
    text = _HEADER.sub("", text)
    text = _TITLE.sub("", text)
    text = _NUMBERING.sub("", text)
    text = _BULLET.sub("", text)
    text = _BRACKETS.sub("", text)
    text = _SPACES.sub(" ", text)
    lines = [line.strip() for line in text.splitlines()]
    return "\n".join(line for line in lines if line)


# =============================================================================
# PARSING
# =============================================================================

_LINE_PREFIXES = (
    re.compile(r"^\*\s*"),
    re.compile(r"^\d+\.\s*"),
    re.compile(r"^-\s*"),
)
_WRAPPERS = re.compile(r"^[\[\"'`]+|[\]\"'`]+$")


def _strip_decorations(line: str) -> str:
    line = line.replace("**", "")
    for prefix in _LINE_PREFIXES:
        line = prefix.sub("", line)
    return line.strip()


def _unwrap(text: str) -> str:
    """Drop surrounding brackets/quotes/backticks: '"[INV-1]"' -> 'INV-1'."""
    return _WRAPPERS.sub("", text.strip()).strip()


def _split_label(line: str) -> Optional[tuple[str, str]]:
    line = _strip_decorations(line)
    label, sep, value = line.partition(":")
    if not sep:
        return None
    return _unwrap(label).lower(), _unwrap(value)


def split_sections(text: str) -> tuple[str, str]:
    """Split a response into (structured part, additional information)."""
    structured, _, additional = text.partition(ADDITIONAL_INFO_MARKER)
    return structured, additional.strip()


def structured_lines(structured: str) -> list[str]:
    lines = (line.strip() for line in structured.split("\n"))
    return [line for line in lines if line and not line.startswith(PREAMBLE_PREFIXES)]


def detect_currency(lines: list[str]) -> Optional[Currency]:
    """
    Find the document currency from the currency line(s).

    Only lines whose label resolves to the currency field are inspected;
    a symbol match or a case-insensitive code match both count.
    """
    for line in lines:
        parts = _split_label(line)
        if parts is None or resolve_field(parts[0]) is not FieldKey.CURRENCY:
            continue
        value = parts[1]
        for currency in CURRENCIES:
            if currency.symbol in value or currency.code.lower() in value.lower():
                return currency
    return None


def _normalize_field_value(key: FieldKey, raw: str, currency: Optional[Currency]) -> Optional[str]:
    value = normalize_value(raw)
    if value is None or currency is None:
        return value
    if key is FieldKey.INVOICE_AMOUNT:
        formatted = format_amount(value)
        if formatted is None:
            logger.warning("Invoice amount is not numeric", value=value, currency=currency.code)
        return formatted
    if key is FieldKey.CURRENCY:
        return currency.label
    return value


def parse_invoice_response(text: str) -> ExtractedRecord:
    """
    Parse a cleaned model response into an ExtractedRecord.

    Example:
        >>> record = parse_invoice_response("Invoice number: INV-001\\nCurrency: $")
        >>> record.invoice_number, record.currency
        ('INV-001', '$ (US Dollar)')
    """
    structured, additional = split_sections(text)
    lines = structured_lines(structured)

    currency = detect_currency(lines)
    if currency:
        logger.debug("Detected document currency", currency=currency.code)

    values: dict[str, Optional[str]] = {}
    for line in lines:
        parts = _split_label(line)
        if parts is None:
            continue
        label, raw_value = parts
        key = resolve_field(label)
        if key is None:
            logger.warning("Unmatched field label", label=label)
            continue
        values[key.attr] = _normalize_field_value(key, raw_value, currency)

    if additional:
        values["additional_information"] = additional

    record = ExtractedRecord(**values)
    logger.debug(
        "Parsed model response",
        matched=sum(value is not None for value in record.fields().values()),
        has_additional_information=bool(record.additional_information),
    )
    return record
