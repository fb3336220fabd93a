from pydantic import BaseModel, Field, field_validator

from ..services.field_schema import FIELD_KEYS, FIELD_SPECS, NOT_AVAILABLE, aliases_for
from ..services.invoice_types import ExtractedRecord, HistoryEntry


class ParseRequest(BaseModel):
    text: str


class ChatRequest(BaseModel):
    question: str = Field(min_length=1)

    @field_validator("question")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("question must not be blank")
        return value.strip()


class ChatResponse(BaseModel):
    question: str
    answer: str


class FieldRow(BaseModel):
    """One row of the extracted-fields table"""
    key: str
    label: str
    value: str
    display_value: str
    valid: bool


class FieldDefinition(BaseModel):
    key: str
    label: str
    aliases: list[str]


class HistorySummary(BaseModel):
    id: int
    filename: str
    timestamp: str
    page_count: int
    invoice_number: str
    vendor_name: str


class HistoryEntryResponse(BaseModel):
    id: int
    filename: str
    timestamp: str
    created_at: str
    page_count: int
    fields: dict[str, str]
    rows: list[FieldRow]
    additional_information: str | None = None
    page_urls: list[str]


def render_rows(record: ExtractedRecord) -> list[FieldRow]:
    """Label, formatted value and validity for every field, in canonical order"""
    rows = []
    for key in FIELD_KEYS:
        spec = FIELD_SPECS[key]
        value = record.get(key) or NOT_AVAILABLE
        rows.append(FieldRow(
            key=key.value,
            label=spec.display_name,
            value=value,
            display_value=spec.formatter(value),
            valid=spec.validator(record.get(key)),
        ))
    return rows


def field_definitions() -> list[FieldDefinition]:
    return [
        FieldDefinition(key=key.value, label=FIELD_SPECS[key].display_name, aliases=aliases_for(key))
        for key in FIELD_KEYS
    ]


def summarize(entry: HistoryEntry) -> HistorySummary:
    return HistorySummary(
        id=entry.id,
        filename=entry.filename,
        timestamp=entry.timestamp,
        page_count=entry.page_count,
        invoice_number=entry.record.invoice_number or NOT_AVAILABLE,
        vendor_name=entry.record.vendor_name or NOT_AVAILABLE,
    )


def entry_response(entry: HistoryEntry) -> HistoryEntryResponse:
    return HistoryEntryResponse(
        id=entry.id,
        filename=entry.filename,
        timestamp=entry.timestamp,
        created_at=entry.created_at.isoformat(),
        page_count=entry.page_count,
        fields=entry.record.to_display(),
        rows=render_rows(entry.record),
        additional_information=entry.record.additional_information,
        page_urls=[
            f"/invoices/history/{entry.id}/pages/{page}" for page in range(1, len(entry.page_images) + 1)
        ],
    )
