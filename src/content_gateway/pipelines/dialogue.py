"""Bounded multi-turn interview for ``dynamicGuideIterative``.

The session is rebuilt from caller-supplied state on every call. Each call
either ends the interview (READY) or yields exactly one next question
(COLLECTING). The model decides readiness, but the session is forced to READY
once the history holds ``MAX_TURNS`` turns, and then the model is not called.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from ..llm.client import GenerativeModel
from ..llm.responses import strip_code_fences
from ..models.account import BrandContext
from ..models.request import GenerationPayload
from ..prompts.compiler import PromptContext, compile_prompt


logger = logging.getLogger(__name__)

MAX_TURNS = 7


class DialogueState(str, Enum):
    COLLECTING = "collecting"
    READY = "ready"


class QuestionType(str, Enum):
    TEXT = "text"
    RADIO = "radio"
    SELECT = "select"


class DialogueQuestion(BaseModel):
    text: str
    type: QuestionType = QuestionType.TEXT
    options: Optional[List[str]] = None

    def to_result(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


FALLBACK_QUESTION = DialogueQuestion(text="What is your biggest challenge?", type=QuestionType.TEXT)


class DialogueTurn(BaseModel):
    question: Any = None
    answer: Any = None


class DialogueSession(BaseModel):
    core_data: Dict[str, Any] = Field(default_factory=dict)
    history: List[DialogueTurn] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: GenerationPayload) -> "DialogueSession":
        turns = []
        for entry in payload.history:
            if isinstance(entry, dict):
                turns.append(DialogueTurn(question=entry.get("question"), answer=entry.get("answer")))
            else:
                turns.append(DialogueTurn(question=entry))
        return cls(core_data=dict(payload.core_data), history=turns)

    @property
    def turn_count(self) -> int:
        return len(self.history)

    @property
    def at_turn_cap(self) -> bool:
        return self.turn_count >= MAX_TURNS


class DialogueStep(BaseModel):
    state: DialogueState
    question: Optional[DialogueQuestion] = None

    @property
    def ready(self) -> bool:
        return self.state is DialogueState.READY

    def to_result(self) -> Dict[str, Any]:
        return {
            "ready": self.ready,
            "question": self.question.to_result() if self.question else None,
        }


class DialogueDecodeError(ValueError):
    """The model reply is not a usable dialogue step."""


def parse_model_reply(text: str) -> Dict[str, Any]:
    try:
        reply = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as exc:
        raise DialogueDecodeError(f"Reply is not JSON: {exc}") from exc
    if not isinstance(reply, dict):
        raise DialogueDecodeError("Reply is not a JSON object")
    return reply


# --- transitions ---------------------------------------------------------


def on_turn_cap(session: DialogueSession) -> DialogueStep:
    logger.info("Dialogue reached %d turns, ending interview", session.turn_count)
    return DialogueStep(state=DialogueState.READY)


def on_decode_error(session: DialogueSession, error: Exception) -> DialogueStep:
    logger.warning("Falling back to default question after turn %d: %s", session.turn_count, error)
    return DialogueStep(state=DialogueState.COLLECTING, question=FALLBACK_QUESTION)


def on_model_reply(session: DialogueSession, reply: Dict[str, Any]) -> DialogueStep:
    if session.at_turn_cap:
        return on_turn_cap(session)
    if reply.get("ready") is True:
        return DialogueStep(state=DialogueState.READY)
    try:
        question = DialogueQuestion.model_validate(reply.get("question"))
    except ValidationError as exc:
        return on_decode_error(session, exc)
    return DialogueStep(state=DialogueState.COLLECTING, question=question)


def advance(session: DialogueSession, model_text: str) -> DialogueStep:
    try:
        reply = parse_model_reply(model_text)
    except DialogueDecodeError as exc:
        return on_decode_error(session, exc)
    return on_model_reply(session, reply)


class DialoguePipeline:
    def __init__(self, model: GenerativeModel) -> None:
        self._model = model

    async def next_turn(self, payload: GenerationPayload, brand: BrandContext) -> Dict[str, Any]:
        session = DialogueSession.from_payload(payload)
        if session.at_turn_cap:
            return on_turn_cap(session).to_result()

        ctx = PromptContext(
            topic=payload.topic or "",
            tones=tuple(payload.tones),
            options=dict(payload.options),
            brand=brand,
            payload=payload,
        )
        prompt = compile_prompt("dynamicGuideIterative", ctx)
        text = await self._model.generate_text([prompt])
        return advance(session, text).to_result()
