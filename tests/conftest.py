from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Sequence

import pytest

from content_gateway.db.memory import InMemoryDBManager
from content_gateway.llm.client import ContentPart, GenerativeModel
from content_gateway.logging.ledger_logger import LedgerLogger
from content_gateway.models.request import Identity
from content_gateway.services.credit_service import CreditService


class FakeVerifier:
    """Accepts the tokens it was given, rejects everything else."""

    def __init__(self, tokens: Optional[Dict[str, Identity]] = None) -> None:
        self.tokens = tokens or {"good-token": Identity(uid="user-1", email="a@b.c", name="Acme")}

    async def verify(self, token: str) -> Identity:
        if token not in self.tokens:
            raise ValueError("invalid token")
        return self.tokens[token]


def image_response(data: bytes = b"\x89PNG-bytes", mime_type: str = "image/png") -> Any:
    part = SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type=mime_type))
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])


def text_only_response(text: str = "I can't draw that.") -> Any:
    part = SimpleNamespace(inline_data=None, text=text)
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])


class FakeModel(GenerativeModel):
    def __init__(self, text: Any = "generated text", image: Any = None) -> None:
        self.text = text
        self.image = image if image is not None else image_response()
        self.text_calls: List[List[ContentPart]] = []
        self.image_calls: List[Dict[str, Any]] = []

    async def generate_text(self, parts: Sequence[ContentPart]) -> str:
        self.text_calls.append(list(parts))
        if isinstance(self.text, Exception):
            raise self.text
        return self.text

    async def generate_image(
        self, parts: Sequence[ContentPart], aspect_ratio: Optional[str] = None
    ) -> Any:
        self.image_calls.append({"parts": list(parts), "aspect_ratio": aspect_ratio})
        if isinstance(self.image, Exception):
            raise self.image
        return self.image


class AuditFailingDB(InMemoryDBManager):
    """Account store whose ledger collection rejects every write."""

    async def add_ledger_entry(self, entry):
        raise RuntimeError("ledger collection unavailable")


@pytest.fixture
def db() -> InMemoryDBManager:
    return InMemoryDBManager()


@pytest.fixture
def ledger(db, tmp_path) -> LedgerLogger:
    return LedgerLogger(db=db, file_path=tmp_path / "ledger.log")


@pytest.fixture
def credit_service(db, ledger) -> CreditService:
    return CreditService(db=db, ledger=ledger)


@pytest.fixture
def fake_model() -> FakeModel:
    return FakeModel()
