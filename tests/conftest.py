"""
Pytest configuration and shared fixtures.

Registers the ``integration`` marker (tests that talk to a real model
endpoint) and provides helpers for faking the model's NDJSON stream.
"""

import json

import httpx
import pytest

from invoice_lens.core.config import settings

FULL_RESPONSE = """Part 1 - Required Fields:
Invoice number: INV-2024-0042
Invoice Date: 15/03/2024
Invoice Amount: 200000.00
Currency: ₹ (Indian Rupee)
Legal Entity Name: Acme Industries Pvt Ltd
Legal Entity Address: 12 MG Road, Bengaluru 560001
Vendor Name: Globex Traders
Vendor Address: 45 Park Street, Kolkata 700016
Payment Terms: Net 30
Payment Method: Bank Transfer
VAT ID: 29ABCDE1234F1Z5
GL Account Number: 400100
Bank Account Number: 001234567890

Part 2 - Additional Information:
- Line item: Steel rods x 100 @ 2000.00
- IGST 18% included"""


def pytest_addoption(parser):
    """Add custom command-line options"""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests against a real Ollama endpoint"
    )


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test requiring a running vision model"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is specified"""
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="need --run-integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


def _ndjson(fragments, key):
    lines = []
    for fragment in fragments:
        if key == "message":
            lines.append(json.dumps({"message": {"role": "assistant", "content": fragment}, "done": False}))
        else:
            lines.append(json.dumps({"response": fragment, "done": False}))
    lines.append(json.dumps({"done": True}))
    return ("\n".join(lines) + "\n").encode("utf-8")


@pytest.fixture
def chat_stream():
    """Build an /api/chat style streamed response from text fragments"""
    def build(*fragments, status_code=200):
        return httpx.Response(status_code, content=_ndjson(fragments, "message"))
    return build


@pytest.fixture
def generate_stream():
    """Build an /api/generate style streamed response from text fragments"""
    def build(*fragments, status_code=200):
        return httpx.Response(status_code, content=_ndjson(fragments, "response"))
    return build


@pytest.fixture
def full_response():
    return FULL_RESPONSE


@pytest.fixture
def chat_url():
    return f"{settings.ollama_base_url.rstrip('/')}{settings.ollama_chat_path}"


@pytest.fixture
def generate_url():
    return f"{settings.ollama_base_url.rstrip('/')}{settings.ollama_generate_path}"


class RecordingSleep:
    """Stand-in for asyncio.sleep that records the requested delays"""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()
