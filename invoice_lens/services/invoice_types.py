from datetime import datetime
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .field_schema import DISPLAY_NAMES, FIELD_KEYS, NOT_AVAILABLE, FieldKey

# Values the model uses to say "I could not find this"
ABSENT_MARKERS = frozenset({NOT_AVAILABLE, "n/a", "none", "-", ""})

_DISPLAY_NAME_KEYS = {name: key for key, name in DISPLAY_NAMES.items()}


def normalize_value(value: Any) -> Optional[str]:
    """Trim a raw field value; absence markers (and the sentinel) become None."""
    if value is None:
        return None
    text = str(value).strip()
    if text.lower() in ABSENT_MARKERS:
        return None
    return text


class ExtractedRecord(BaseModel):
    """
    The 13 invoice fields plus two free-text slots.

    An absent field is None here; the "not available" sentinel only
    appears in ``to_display()`` output. JSON uses camelCase names
    (invoiceNumber, vatId, ...) and snake_case is accepted on input.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    invoice_number: str | None = None
    invoice_date: str | None = None
    invoice_amount: str | None = None
    currency: str | None = None
    legal_entity_name: str | None = None
    legal_entity_address: str | None = None
    vendor_name: str | None = None
    vendor_address: str | None = None
    payment_terms: str | None = None
    payment_method: str | None = None
    vat_id: str | None = None
    gl_account_number: str | None = None
    bank_account_number: str | None = None

    additional_information: str | None = None  # Free text that maps to no field
    full_text: str | None = None  # Whole cleaned model response, kept for chat

    @field_validator(*[key.attr for key in FIELD_KEYS], mode="before")
    @classmethod
    def _normalize_field(cls, value: Any) -> Optional[str]:
        return normalize_value(value)

    @field_validator("additional_information", "full_text", mode="before")
    @classmethod
    def _normalize_text(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ExtractedRecord":
        """
        Build a record from a loosely keyed mapping.

        Keys may be camelCase (``invoiceNumber``), snake_case or display
        names (``"Invoice Number"``); values may carry the sentinel.
        Unknown keys are ignored.
        """
        normalized = {}
        for name, value in data.items():
            key = _DISPLAY_NAME_KEYS.get(name)
            normalized[key.attr if key else name] = value
        return cls.model_validate(normalized)

    def get(self, key: FieldKey) -> Optional[str]:
        return getattr(self, key.attr)

    def fields(self) -> dict[FieldKey, Optional[str]]:
        return {key: self.get(key) for key in FIELD_KEYS}

    def is_empty(self) -> bool:
        """True when none of the 13 fields has a value; free-text slots do not count."""
        return all(self.get(key) is None for key in FIELD_KEYS)

    def to_display(self, include_full_text: bool = False) -> dict[str, str]:
        """camelCase mapping with every field present, absent ones as the sentinel."""
        result = {key.value: self.get(key) or NOT_AVAILABLE for key in FIELD_KEYS}
        if self.additional_information:
            result["additionalInformation"] = self.additional_information
        if include_full_text and self.full_text:
            result["fullText"] = self.full_text
        return result


class HistoryEntry(BaseModel):
    """One completed extraction, as shown in the session history panel."""
    model_config = ConfigDict(frozen=True)

    id: int  # Creation time in epoch milliseconds
    record: ExtractedRecord
    created_at: datetime
    timestamp: str  # Display form of created_at
    filename: str
    page_count: int
    page_images: tuple[bytes, ...] = Field(default=(), exclude=True, repr=False)
    page_media_type: str = "image/png"
