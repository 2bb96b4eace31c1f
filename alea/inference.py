# alea/inference.py
import json
import logging
from typing import List, Optional, Protocol

from openai import NOT_GIVEN, AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from .config import Settings
from .schemas import CourseOutline, FlashcardDeck

logger = logging.getLogger(__name__)


class InferenceError(RuntimeError):
    """The generative call itself failed"""


class InvalidPayload(ValueError):
    """The model answered, but not with what we asked for"""


class InferenceService(Protocol):
    async def generate(self, prompt_parts: List[str]) -> str:
        ...


class GeminiInference:
    """
    Text generation through Gemini's OpenAI-compatible endpoint.

    The first prompt part is sent as the system instruction, the remaining
    parts as the user message.
    """

    def __init__(self, settings: Settings, client: Optional[AsyncOpenAI] = None):
        self.model_name = settings.model_name
        self.client = client or AsyncOpenAI(
            api_key=settings.gemini_api_key,
            base_url=settings.inference_base_url,
            timeout=settings.inference_timeout or NOT_GIVEN,
            max_retries=0,  # failures surface to the user, who retries manually
        )

    async def generate(self, prompt_parts: List[str]) -> str:
        system, *rest = prompt_parts
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": "\n".join(rest)},
        ]
        try:
            response = await self.client.chat.completions.create(
                model=self.model_name,
                messages=messages,
            )
        except OpenAIError as e:
            raise InferenceError(f"Inference call failed: {e}") from e

        if not response.choices:
            raise InferenceError("Inference returned no choices")
        text = response.choices[0].message.content or ""
        logger.debug("Inference returned %d characters", len(text))
        return text

    async def close(self):
        await self.client.close()


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` markers the model sometimes wraps JSON in."""
    return text.replace("```json", "").replace("```", "").strip()


def _load_json(text: str):
    try:
        return json.loads(strip_code_fences(text))
    except json.JSONDecodeError as e:
        raise InvalidPayload(f"Response is not valid JSON: {e}") from e


def decode_course(text: str) -> CourseOutline:
    try:
        return CourseOutline.model_validate(_load_json(text))
    except ValidationError as e:
        raise InvalidPayload(f"Malformed course outline: {e.errors()[0]['msg']}") from e


def decode_flashcards(text: str) -> FlashcardDeck:
    try:
        return FlashcardDeck.model_validate(_load_json(text))
    except ValidationError as e:
        raise InvalidPayload(f"Malformed flashcard set: {e.errors()[0]['msg']}") from e


def decode_lesson(text: str) -> str:
    # Lesson bodies are Markdown, fences included
    if not text or not text.strip():
        raise InvalidPayload("Lesson text is empty")
    return text
