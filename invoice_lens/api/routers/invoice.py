import asyncio
import json

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from fastapi.responses import StreamingResponse
from loguru import logger

from ...core.errors import InvoiceLensError
from ...models.invoice import (
    FieldDefinition,
    HistoryEntryResponse,
    ParseRequest,
    entry_response,
    field_definitions,
    render_rows,
)
from ...services.document_pipeline import DocumentPipeline
from ...services.response_parser import clean_response, parse_invoice_response
from ..deps import get_pipeline

router = APIRouter(prefix="/invoices", tags=["invoices"])


async def read_upload(request: Request, file: UploadFile | None) -> tuple[str, bytes, str | None]:
    """
    Accepts either:
    - multipart/form-data (file upload via form)
    - a raw binary body, with the name in an X-Filename header
    """
    if file:
        return file.filename or "upload", await file.read(), file.content_type

    content = await request.body()
    if not content:
        raise HTTPException(status_code=422, detail="No file provided (either multipart or raw body)")
    return request.headers.get("x-filename", "upload"), content, request.headers.get("content-type")


@router.post("/extract", response_model=HistoryEntryResponse)
async def extract(
    request: Request,
    file: UploadFile = File(None),
    pipeline: DocumentPipeline = Depends(get_pipeline),
):
    """
    Extract invoice fields from an image or PDF.

    Every page is sent to the vision model in order, the page results are
    merged, and the merged record is added to the session history.
    Failures come back as ``{"detail": ..., "retryable": ...}``.
    """
    filename, content, content_type = await read_upload(request, file)
    entry = await pipeline.process(filename, content, content_type)
    return entry_response(entry)


@router.post("/extract/stream")
async def extract_stream(
    request: Request,
    file: UploadFile = File(None),
    pipeline: DocumentPipeline = Depends(get_pipeline),
):
    """
    Same as /extract, reported as newline-delimited JSON events:

        {"event": "progress", "message": "Processing page 1 of 2"}
        ...
        {"event": "result", "entry": {...}}   or   {"event": "error", ...}
    """
    filename, content, content_type = await read_upload(request, file)
    queue: asyncio.Queue = asyncio.Queue()

    async def run():
        try:
            entry = await pipeline.process(
                filename,
                content,
                content_type,
                on_progress=lambda message: queue.put_nowait({"event": "progress", "message": message}),
            )
            queue.put_nowait({"event": "result", "entry": entry_response(entry).model_dump()})
        except InvoiceLensError as e:
            logger.error("Streamed extraction failed", filename=filename, error=e.message)
            queue.put_nowait({"event": "error", "detail": e.message, "retryable": e.retryable})
        finally:
            queue.put_nowait(None)

    async def events():
        task = asyncio.create_task(run())
        while (event := await queue.get()) is not None:
            yield json.dumps(event) + "\n"
        await task

    return StreamingResponse(events(), media_type="application/x-ndjson")


@router.post("/parse")
async def parse(req: ParseRequest):
    """Clean and parse a raw model response without calling the model."""
    record = parse_invoice_response(clean_response(req.text))
    return {
        "fields": record.to_display(),
        "rows": [row.model_dump() for row in render_rows(record)],
        "extraction_failed": record.is_empty(),
    }


@router.get("/fields", response_model=list[FieldDefinition])
async def list_fields():
    """The recognised fields, their display labels and accepted label aliases."""
    return field_definitions()
