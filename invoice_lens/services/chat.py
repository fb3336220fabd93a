"""
Question answering over one extracted invoice.

The structured fields and the free-text additional information are put
into a single prompt together with the user's question; the answer is
streamed back from /api/generate. There is no retry here; a failed chat
request surfaces straight to the caller.
"""

from typing import AsyncIterator, Callable, Optional

from loguru import logger

from ..core.config import settings
from ..core.errors import InputError
from .field_schema import DISPLAY_NAMES, FIELD_KEYS, NOT_AVAILABLE
from .invoice_types import ExtractedRecord
from .ollama_stream import GENERATE_FRAGMENT_PATH, OllamaStream

NO_ADDITIONAL_INFO = "No additional information available"


def build_chat_prompt(question: str, record: ExtractedRecord) -> str:
    fields = "\n".join(
        f"{DISPLAY_NAMES[key]}: {record.get(key) or NOT_AVAILABLE}" for key in FIELD_KEYS
    )
    additional = record.additional_information or NO_ADDITIONAL_INFO
    return f"""You are an AI assistant specialized in analyzing invoice data. You have access to the following invoice information:

Structured Fields:
{fields}

Additional Information:
{additional}

User question: {question}

Please provide a clear and concise answer based on both the structured fields and additional information. If asked about information not present in either source, clearly state that the information is not available."""


class ChatService:
    def __init__(self, stream: Optional[OllamaStream] = None, model: Optional[str] = None):
        self.stream = stream or OllamaStream()
        self.model = model or settings.ollama_model

    async def stream_answer(self, question: str, record: ExtractedRecord) -> AsyncIterator[str]:
        """Yield answer fragments as the model produces them."""
        question = question.strip()
        if not question:
            raise InputError("Question must not be empty")

        payload = {
            "model": self.model,
            "prompt": build_chat_prompt(question, record),
            "stream": True,
        }
        logger.info("Chat request", question_length=len(question))
        async for fragment in self.stream.iter_fragments(
            settings.ollama_generate_path, payload, GENERATE_FRAGMENT_PATH
        ):
            yield fragment

    async def ask(
        self,
        question: str,
        record: ExtractedRecord,
        on_progress: Optional[Callable[[str], None]] = None,
    ) -> str:
        """Return the full answer; ``on_progress`` sees the answer so far after each fragment."""
        answer = ""
        async for fragment in self.stream_answer(question, record):
            answer += fragment
            if on_progress:
                on_progress(answer)
        return answer
