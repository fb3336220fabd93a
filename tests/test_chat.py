"""
Tests for the invoice chat service.
"""

import asyncio
import json

import httpx
import pytest
import respx

from invoice_lens.core.errors import InputError, TransportError
from invoice_lens.services.chat import NO_ADDITIONAL_INFO, ChatService, build_chat_prompt
from invoice_lens.services.invoice_types import ExtractedRecord

RECORD = ExtractedRecord(
    invoice_number="INV-42",
    invoice_amount="1,200.00",
    currency="€ (Euro)",
    additional_information="Line item: consulting, 12h",
)


def test_prompt_contains_fields_info_and_question():
    prompt = build_chat_prompt("What is the total?", RECORD)

    assert "Invoice Number: INV-42" in prompt
    assert "Invoice Amount: 1,200.00" in prompt
    assert "Vendor Name: not available" in prompt
    assert "Line item: consulting, 12h" in prompt
    assert "User question: What is the total?" in prompt


def test_prompt_without_additional_information():
    prompt = build_chat_prompt("Who is the vendor?", ExtractedRecord(invoice_number="1"))
    assert NO_ADDITIONAL_INFO in prompt


@respx.mock
def test_ask_accumulates_answer(generate_url, generate_stream):
    route = respx.post(generate_url).mock(return_value=generate_stream("The total ", "is 1,200.00 EUR."))
    progress = []

    answer = asyncio.run(ChatService(model="chat-model").ask("What is the total?", RECORD, progress.append))

    assert answer == "The total is 1,200.00 EUR."
    assert progress == ["The total ", "The total is 1,200.00 EUR."]
    body = json.loads(route.calls.last.request.content)
    assert body["model"] == "chat-model"
    assert body["stream"] is True
    assert "What is the total?" in body["prompt"]


@respx.mock
def test_chat_does_not_retry(generate_url):
    route = respx.post(generate_url).mock(return_value=httpx.Response(500))

    with pytest.raises(TransportError):
        asyncio.run(ChatService().ask("anything?", RECORD))

    assert route.call_count == 1


def test_empty_question_rejected():
    with pytest.raises(InputError):
        asyncio.run(ChatService().ask("   ", RECORD))
