from fastapi import Request

from ..core.errors import HistoryEntryNotFoundError
from ..services.chat import ChatService
from ..services.document_pipeline import DocumentPipeline
from ..services.invoice_types import HistoryEntry
from ..services.storage.history import HistoryStore


def get_history(request: Request) -> HistoryStore:
    return request.app.state.history


def get_pipeline(request: Request) -> DocumentPipeline:
    return request.app.state.pipeline


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat


def get_entry(entry_id: int, request: Request) -> HistoryEntry:
    entry = get_history(request).get(entry_id)
    if entry is None:
        raise HistoryEntryNotFoundError(entry_id)
    return entry
