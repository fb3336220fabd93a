"""
Integration tests against a real Ollama endpoint with a vision model.

These tests are skipped by default. Run with:
    OLLAMA_BASE_URL=http://localhost:11434 pytest --run-integration -m integration

Requirements:
- A running Ollama server with the configured vision model pulled
- TEST_INVOICE_PATH pointing at an invoice image or PDF
"""

import asyncio
import os
from pathlib import Path

import pytest

from invoice_lens.core.config import settings
from invoice_lens.services.chat import ChatService
from invoice_lens.services.document_pipeline import DocumentPipeline
from invoice_lens.services.storage.history import HistoryStore

TEST_INVOICE_PATH = os.getenv("TEST_INVOICE_PATH")


@pytest.fixture
def invoice_file():
    if not TEST_INVOICE_PATH or not Path(TEST_INVOICE_PATH).exists():
        pytest.skip("TEST_INVOICE_PATH not set or file missing")
    return Path(TEST_INVOICE_PATH)


@pytest.mark.integration
def test_real_extraction_and_chat(invoice_file):
    print(f"\nUsing model {settings.ollama_model} at {settings.ollama_base_url}")
    pipeline = DocumentPipeline(HistoryStore())

    entry = asyncio.run(pipeline.process(invoice_file.name, invoice_file.read_bytes()))

    fields = entry.record.to_display()
    for key, value in fields.items():
        print(f"  {key}: {value}")
    assert not entry.record.is_empty()
    assert entry.page_count >= 1

    answer = asyncio.run(ChatService().ask("What is the invoice number?", entry.record))
    print(f"  chat: {answer}")
    assert answer.strip()
