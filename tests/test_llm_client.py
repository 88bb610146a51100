from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List

import pytest
from google.genai import types

from content_gateway.llm.client import GeminiModel, InlineImage

from conftest import image_response


class FakeModels:
    def __init__(self, response: Any) -> None:
        self.response = response
        self.calls: List[Dict[str, Any]] = []

    async def generate_content(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        return self.response


def _model(response: Any) -> tuple[GeminiModel, FakeModels]:
    models = FakeModels(response)
    client = SimpleNamespace(aio=SimpleNamespace(models=models))
    return GeminiModel(api_key=None, text_model="text-model", image_model="image-model", client=client), models


@pytest.mark.asyncio
async def test_image_request_carries_aspect_ratio():
    model, models = _model(image_response())

    await model.generate_image(["a cat", InlineImage("image/png", b"png")], aspect_ratio="9:16")

    call = models.calls[0]
    assert call["model"] == "image-model"
    config = call["config"]
    assert isinstance(config.image_config, types.ImageConfig)
    assert config.image_config.aspect_ratio == "9:16"
    assert config.response_modalities == ["IMAGE"]
    assert call["contents"][0].text == "a cat"
    assert call["contents"][1].inline_data.data == b"png"


@pytest.mark.asyncio
async def test_image_request_without_aspect_ratio_leaves_it_to_the_model():
    model, models = _model(image_response())

    await model.generate_image(["a cat"])

    assert models.calls[0]["config"].image_config is None


@pytest.mark.asyncio
async def test_text_request_returns_response_text():
    model, models = _model(SimpleNamespace(text="hello"))

    assert await model.generate_text(["say hi"]) == "hello"
    assert models.calls[0]["model"] == "text-model"
