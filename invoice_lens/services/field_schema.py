"""
Canonical invoice field set.

Holds the 13 recognised fields in display order, the label aliases the
model is known to produce for each of them, and the per-field validators
and formatters the presentation layer uses to highlight and render values.
Everything here is static and read-only.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from dateutil import parser as date_parser

NOT_AVAILABLE = "not available"


class FieldKey(str, Enum):
    INVOICE_NUMBER = "invoiceNumber"
    INVOICE_DATE = "invoiceDate"
    INVOICE_AMOUNT = "invoiceAmount"
    CURRENCY = "currency"
    LEGAL_ENTITY_NAME = "legalEntityName"
    LEGAL_ENTITY_ADDRESS = "legalEntityAddress"
    VENDOR_NAME = "vendorName"
    VENDOR_ADDRESS = "vendorAddress"
    PAYMENT_TERMS = "paymentTerms"
    PAYMENT_METHOD = "paymentMethod"
    VAT_ID = "vatId"
    GL_ACCOUNT_NUMBER = "glAccountNumber"
    BANK_ACCOUNT_NUMBER = "bankAccountNumber"

    @property
    def attr(self) -> str:
        """Attribute name on ExtractedRecord (snake_case)."""
        return self.name.lower()


FIELD_KEYS: tuple[FieldKey, ...] = tuple(FieldKey)

# Canonical lowercase label -> aliases seen in model output.
# Order matters: the first alias set containing a label wins.
FIELD_VARIANTS: dict[str, frozenset[str]] = {
    "invoice number": frozenset({"invoice number", "invoice no", "invoice no.", "invoice #", "inv no", "inv.no", "inv #"}),
    "invoice date": frozenset({"invoice date", "date", "inv date", "invoice dt"}),
    "invoice amount": frozenset({"invoice amount", "total amount", "amount", "total", "grand total"}),
    "currency": frozenset({"currency", "curr", "currency type"}),
    "legal entity name": frozenset({"legal entity name", "company name", "business name", "entity name"}),
    "legal entity address": frozenset({"legal entity address", "company address", "business address", "address"}),
    "vendor name": frozenset({"vendor name", "customer name", "client name", "billed to", "bill to"}),
    "vendor address": frozenset({"vendor address", "customer address", "client address", "billing address"}),
    "payment terms": frozenset({"payment terms", "terms", "payment condition", "due terms"}),
    "payment method": frozenset({"payment method", "method of payment", "pay method", "payment type"}),
    "vat id": frozenset({"vat id", "vat number", "vat reg no", "gst no", "tax id"}),
    "gl account number": frozenset({"gl account number", "gl number", "general ledger", "account number"}),
    "bank account number": frozenset({"bank account number", "account no", "bank account", "bank acc no"}),
}

CANONICAL_LABELS: dict[str, FieldKey] = dict(zip(FIELD_VARIANTS, FIELD_KEYS))

DISPLAY_NAMES: dict[FieldKey, str] = {
    FieldKey.INVOICE_NUMBER: "Invoice Number",
    FieldKey.INVOICE_DATE: "Invoice Date",
    FieldKey.INVOICE_AMOUNT: "Invoice Amount",
    FieldKey.CURRENCY: "Currency",
    FieldKey.LEGAL_ENTITY_NAME: "Legal Entity Name",
    FieldKey.LEGAL_ENTITY_ADDRESS: "Legal Entity Address",
    FieldKey.VENDOR_NAME: "Vendor Name",
    FieldKey.VENDOR_ADDRESS: "Vendor Address",
    FieldKey.PAYMENT_TERMS: "Payment Terms",
    FieldKey.PAYMENT_METHOD: "Payment Method",
    FieldKey.VAT_ID: "VAT ID",
    FieldKey.GL_ACCOUNT_NUMBER: "GL Account Number",
    FieldKey.BANK_ACCOUNT_NUMBER: "Bank Account Number",
}


def resolve_field(label: str) -> Optional[FieldKey]:
    """
    Map a raw field label to its FieldKey.

    Matching is exact after lowercasing and trimming; there is no fuzzy
    fallback, so "invoice num" does not resolve.

    Example:
        >>> resolve_field("Inv #")
        <FieldKey.INVOICE_NUMBER: 'invoiceNumber'>
        >>> resolve_field("po number") is None
        True
    """
    normalized = label.strip().lower()
    for canonical, aliases in FIELD_VARIANTS.items():
        if normalized in aliases:
            return CANONICAL_LABELS[canonical]
    return None


# =============================================================================
# NUMBERS AND DATES
# =============================================================================

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)")


def parse_amount(value: str) -> Optional[float]:
    """
    Read the numeric part of an amount string.

    Everything except digits, '.' and '-' is dropped, then the longest
    leading number is parsed ("$1,234.5" -> 1234.5, "1.500.50" -> 1.5).
    Returns None when no number remains.
    """
    match = _LEADING_NUMBER.match(_NON_NUMERIC.sub("", value))
    if not match:
        return None
    return float(match.group(0))


def format_amount(value: str) -> Optional[str]:
    """Render an amount grouped with exactly two decimals, or None if unparseable."""
    number = parse_amount(value)
    if number is None:
        return None
    return f"{number:,.2f}"


def parse_date(value: str):
    try:
        return date_parser.parse(value)
    except (ValueError, OverflowError):
        return None


# =============================================================================
# VALIDATORS AND FORMATTERS
# =============================================================================

def _is_present(value: Optional[str]) -> bool:
    return bool(value) and value.strip().lower() != NOT_AVAILABLE


def validate_invoice_number(value: Optional[str]) -> bool:
    return _is_present(value)


def validate_invoice_date(value: Optional[str]) -> bool:
    return _is_present(value) and parse_date(value) is not None


def validate_invoice_amount(value: Optional[str]) -> bool:
    return _is_present(value) and parse_amount(value) is not None


def format_invoice_date(value: str) -> str:
    """en-US short date (M/D/YYYY); unparseable values pass through."""
    if not _is_present(value):
        return value
    parsed = parse_date(value)
    if parsed is None:
        return value
    return f"{parsed.month}/{parsed.day}/{parsed.year}"


def format_invoice_amount(value: str) -> str:
    if not _is_present(value):
        return value
    return format_amount(value) or value


def _identity(value: str) -> str:
    return value


@dataclass(frozen=True)
class FieldSpec:
    """What the presentation layer needs to render one field."""
    key: FieldKey
    display_name: str
    validator: Callable[[Optional[str]], bool]
    formatter: Callable[[str], str]


_VALIDATORS: dict[FieldKey, Callable[[Optional[str]], bool]] = {
    FieldKey.INVOICE_NUMBER: validate_invoice_number,
    FieldKey.INVOICE_DATE: validate_invoice_date,
    FieldKey.INVOICE_AMOUNT: validate_invoice_amount,
}

_FORMATTERS: dict[FieldKey, Callable[[str], str]] = {
    FieldKey.INVOICE_DATE: format_invoice_date,
    FieldKey.INVOICE_AMOUNT: format_invoice_amount,
}

FIELD_SPECS: dict[FieldKey, FieldSpec] = {
    key: FieldSpec(
        key=key,
        display_name=DISPLAY_NAMES[key],
        validator=_VALIDATORS.get(key, _is_present),
        formatter=_FORMATTERS.get(key, _identity),
    )
    for key in FIELD_KEYS
}


def validate_field(key: FieldKey, value: Optional[str]) -> bool:
    return FIELD_SPECS[key].validator(value)


def format_field(key: FieldKey, value: str) -> str:
    return FIELD_SPECS[key].formatter(value)


def aliases_for(key: FieldKey) -> list[str]:
    canonical = next(label for label, k in CANONICAL_LABELS.items() if k is key)
    return sorted(FIELD_VARIANTS[canonical])
