import asyncio
import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from alea.inference import (
    GeminiInference, InferenceError, InvalidPayload,
    decode_course, decode_flashcards, decode_lesson, strip_code_fences,
)
from conftest import course_json


def test_fenced_json_decodes_like_plain_json():
    plain = decode_course(course_json(7))
    fenced = decode_course(course_json(7, fenced=True))
    assert fenced == plain
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'


@pytest.mark.parametrize("text", [
    "```json\n{\"a\": 1}\n```",
    "  {\"a\": 1}\n",
    "```\n{\"a\": 1}\n```json\n",
    "Here you go:\n```json\n[1, 2]\n```\nDone.",
    "",
])
def test_stripping_fences_twice_changes_nothing(text):
    once = strip_code_fences(text)
    assert strip_code_fences(once) == once


@pytest.mark.parametrize("plain", ["{\"a\": 1}", "  # Lesson\n\nBody\n  ", "\n\n"])
def test_unfenced_text_is_only_trimmed(plain):
    assert strip_code_fences(plain) == plain.strip()


def test_course_days_are_one_to_n():
    outline = decode_course(course_json(5))
    assert [m.day for m in outline.daily_modules] == [1, 2, 3, 4, 5]
    assert outline.title == "Python Basics in a Week"


@pytest.mark.parametrize("days", [[1, 2, 2], [2, 3, 4], [1, 3]])
def test_course_rejects_gaps_and_duplicates(days):
    text = json.dumps({
        "title": "Broken",
        "dailyModules": [{"day": d, "title": "t", "description": "d"} for d in days],
    })
    with pytest.raises(InvalidPayload):
        decode_course(text)


@pytest.mark.parametrize("outline", [
    {"dailyModules": [{"day": 1, "title": "t", "description": "d"}]},
    {"title": "No modules", "dailyModules": []},
    {"title": "String day", "dailyModules": [{"day": "1", "title": "t", "description": "d"}]},
    {"title": "No title", "dailyModules": [{"day": 1, "description": "d"}]},
])
def test_course_rejects_malformed_fields(outline):
    with pytest.raises(InvalidPayload):
        decode_course(json.dumps(outline))


def test_non_json_is_rejected():
    with pytest.raises(InvalidPayload):
        decode_course("Sure! Here is your course: ...")


def test_flashcards():
    deck = decode_flashcards('```json\n{"cards": [{"q": "2+2?", "a": "4"}]}\n```')
    assert [card.model_dump() for card in deck.cards] == [{"q": "2+2?", "a": "4"}]

    with pytest.raises(InvalidPayload):
        decode_flashcards('{"cards": []}')
    with pytest.raises(InvalidPayload):
        decode_flashcards('{"cards": [{"q": "missing answer"}]}')


def test_lesson_keeps_markdown():
    text = "# Variables\n\n```python\nx = 1\n```"
    assert decode_lesson(text) == text
    with pytest.raises(InvalidPayload):
        decode_lesson("   ")


class FakeCompletions:
    def __init__(self, result):
        self.result = result
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def fake_openai(result):
    completions = FakeCompletions(result)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def test_gemini_sends_system_and_user_parts(settings):
    response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content="hello"))])
    client, completions = fake_openai(response)
    gemini = GeminiInference(settings, client=client)

    text = asyncio.run(gemini.generate(["You are a tutor.", "Topic: X", "Duration: 7_days"]))

    assert text == "hello"
    assert completions.kwargs["model"] == settings.model_name
    assert completions.kwargs["messages"] == [
        {"role": "system", "content": "You are a tutor."},
        {"role": "user", "content": "Topic: X\nDuration: 7_days"},
    ]


def test_gemini_wraps_client_errors(settings):
    timeout = openai.APITimeoutError(request=httpx.Request("POST", "https://example.invalid"))
    client, _ = fake_openai(timeout)
    with pytest.raises(InferenceError):
        asyncio.run(GeminiInference(settings, client=client).generate(["system", "user"]))


def test_gemini_without_choices(settings):
    client, _ = fake_openai(SimpleNamespace(choices=[]))
    with pytest.raises(InferenceError):
        asyncio.run(GeminiInference(settings, client=client).generate(["system", "user"]))
