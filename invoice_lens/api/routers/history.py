from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response, StreamingResponse
from loguru import logger

from ...core.errors import InvoiceLensError
from ...models.invoice import (
    ChatRequest,
    ChatResponse,
    HistoryEntryResponse,
    HistorySummary,
    entry_response,
    summarize,
)
from ...services.chat import ChatService
from ...services.invoice_types import HistoryEntry
from ...services.storage.history import HistoryStore
from ..deps import get_chat_service, get_entry, get_history

router = APIRouter(prefix="/invoices/history", tags=["history"])


@router.get("", response_model=list[HistorySummary])
async def list_history(history: HistoryStore = Depends(get_history)):
    """Completed extractions of this session, newest first"""
    return [summarize(entry) for entry in history.list()]


@router.delete("")
async def clear_history(history: HistoryStore = Depends(get_history)):
    cleared = len(history)
    history.clear()
    return {"cleared": cleared}


@router.get("/{entry_id}", response_model=HistoryEntryResponse)
async def get_history_entry(entry: HistoryEntry = Depends(get_entry)):
    return entry_response(entry)


@router.get("/{entry_id}/pages/{page}")
async def get_page_image(page: int, entry: HistoryEntry = Depends(get_entry)):
    """Page image as sent to the model (1-based page number)"""
    if page < 1 or page > len(entry.page_images):
        raise HTTPException(status_code=404, detail=f"Page {page} not found")
    return Response(content=entry.page_images[page - 1], media_type=entry.page_media_type)


@router.post("/{entry_id}/chat", response_model=ChatResponse)
async def chat(
    req: ChatRequest,
    entry: HistoryEntry = Depends(get_entry),
    chat_service: ChatService = Depends(get_chat_service),
):
    """Ask a question about an extracted invoice"""
    answer = await chat_service.ask(req.question, entry.record)
    return ChatResponse(question=req.question, answer=answer)


@router.post("/{entry_id}/chat/stream")
async def chat_stream(
    req: ChatRequest,
    entry: HistoryEntry = Depends(get_entry),
    chat_service: ChatService = Depends(get_chat_service),
):
    """
    Same as /chat, with the answer streamed as plain text.

    The first fragment is read before the response starts, so a model
    failure still answers with the usual error body and status.
    """
    fragments = chat_service.stream_answer(req.question, entry.record)
    try:
        first = await anext(fragments)
    except StopAsyncIteration:
        first = ""

    async def answer():
        yield first
        try:
            async for fragment in fragments:
                yield fragment
        except InvoiceLensError as e:
            logger.error("Chat stream interrupted", entry_id=entry.id, error=e.message)

    return StreamingResponse(answer(), media_type="text/plain")
