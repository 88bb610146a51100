from __future__ import annotations

import json

import pytest

from content_gateway.models.account import BrandContext
from content_gateway.models.request import GenerationPayload
from content_gateway.pipelines.dialogue import (
    FALLBACK_QUESTION,
    MAX_TURNS,
    DialoguePipeline,
    DialogueSession,
    DialogueState,
    advance,
    on_decode_error,
    on_model_reply,
    on_turn_cap,
)

from conftest import FakeModel


def _payload(turns: int) -> GenerationPayload:
    history = [{"question": {"text": f"Q{i}"}, "answer": f"A{i}"} for i in range(turns)]
    return GenerationPayload.model_validate({"coreData": {"niche": "cooking"}, "history": history})


@pytest.mark.asyncio
async def test_model_asks_next_question():
    reply = {"ready": False, "question": {"text": "Which platform?", "type": "radio", "options": ["YouTube", "TikTok"]}}
    model = FakeModel(text="```json\n" + json.dumps(reply) + "\n```")

    result = await DialoguePipeline(model).next_turn(_payload(2), BrandContext())

    assert result == {
        "ready": False,
        "question": {"text": "Which platform?", "type": "radio", "options": ["YouTube", "TikTok"]},
    }
    prompt = model.text_calls[0][0]
    assert "Niche: cooking" in prompt
    assert "Q2: Q1" in prompt


@pytest.mark.asyncio
async def test_model_reports_ready():
    model = FakeModel(text='{"ready": true}')

    result = await DialoguePipeline(model).next_turn(_payload(3), BrandContext())

    assert result == {"ready": True, "question": None}


@pytest.mark.asyncio
async def test_turn_cap_ends_interview_without_model_call():
    model = FakeModel(text='{"ready": false, "question": {"text": "More?"}}')

    result = await DialoguePipeline(model).next_turn(_payload(MAX_TURNS), BrandContext())

    assert result == {"ready": True, "question": None}
    assert model.text_calls == []


@pytest.mark.asyncio
async def test_undecodable_reply_falls_back():
    model = FakeModel(text="Sure! Here is your next question: what do you cook?")

    result = await DialoguePipeline(model).next_turn(_payload(1), BrandContext())

    assert result == {"ready": False, "question": {"text": "What is your biggest challenge?", "type": "text"}}


def test_reply_without_usable_question_falls_back():
    session = DialogueSession()

    step = on_model_reply(session, {"ready": False, "question": {"type": "radio"}})

    assert step.state is DialogueState.COLLECTING
    assert step.question == FALLBACK_QUESTION


def test_non_object_reply_falls_back():
    step = advance(DialogueSession(), "[1, 2, 3]")

    assert step.question == FALLBACK_QUESTION


def test_named_transitions():
    session = DialogueSession.from_payload(_payload(MAX_TURNS))

    assert session.at_turn_cap
    assert on_turn_cap(session).ready
    assert on_model_reply(session, {"ready": False, "question": {"text": "x"}}).ready
    assert not on_decode_error(session, ValueError("bad")).ready


def test_session_accepts_plain_history_entries():
    session = DialogueSession.from_payload(GenerationPayload(history=["What do you do?", {"question": "Q", "answer": "A"}]))

    assert session.turn_count == 2
    assert session.history[0].question == "What do you do?"
    assert session.history[1].answer == "A"
