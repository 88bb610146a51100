from __future__ import annotations

import json

import pytest

from content_gateway.errors import PayloadValidationError
from content_gateway.services.normalizer import decode_body, normalize_body


def test_accepts_mapping_string_and_bytes():
    body = {"type": "caption", "payload": {"topic": "coffee"}}

    for raw in (body, json.dumps(body), json.dumps(body).encode("utf-8")):
        request = normalize_body(raw)
        assert request.type == "caption"
        assert request.payload.topic == "coffee"


def test_unwraps_callable_envelope():
    request = normalize_body({"data": {"type": "tweet", "payload": {"topic": "rust"}}})

    assert request.type == "tweet"
    assert request.payload.topic == "rust"


def test_undecodable_body_yields_empty_request():
    assert decode_body(b"\xff\xfe not json") is None
    assert decode_body("[1, 2]") is None

    request = normalize_body("{not json")
    assert request.type is None
    assert request.payload.topic is None
    assert request.payload.options == {}


def test_missing_payload_defaults_to_empty():
    request = normalize_body({"type": "dynamicGuide"})

    assert request.type == "dynamicGuide"
    assert request.payload.has_image is False
    assert request.payload.use_brand_data is True


def test_options_assembled_from_payload_root():
    request = normalize_body(
        {"type": "idea", "payload": {"topic": "yoga", "numIdeas": 7, "language": "es", "length": None}}
    )

    assert request.payload.options == {"numIdeas": 7, "language": "es"}


def test_explicit_options_win_over_root_fields():
    request = normalize_body(
        {"type": "idea", "payload": {"topic": "yoga", "numIdeas": 7, "options": {"numIdeas": 2}}}
    )

    assert request.payload.options == {"numIdeas": 2}


def test_tones_are_coerced_and_truncated():
    many = normalize_body({"type": "caption", "payload": {"topic": "x", "tones": ["a", "b", "c", "d"]}})
    single = normalize_body({"type": "caption", "payload": {"topic": "x", "tones": "witty"}})

    assert many.payload.tones == ["a", "b", "c"]
    assert single.payload.tones == ["witty"]


def test_topic_is_sanitized():
    request = normalize_body({"type": "caption", "payload": {"topic": "  <b>launch</b> day "}})

    assert request.payload.topic == "launch day"


def test_overlong_topic_is_rejected():
    with pytest.raises(PayloadValidationError) as excinfo:
        normalize_body({"type": "caption", "payload": {"topic": "x" * 5001}})

    assert excinfo.value.status_code == 400
    assert excinfo.value.debug == {"receivedType": "caption"}


def test_non_string_topic_is_rejected():
    with pytest.raises(PayloadValidationError):
        normalize_body({"type": "caption", "payload": {"topic": 42}})


def test_camel_case_fields_are_mapped():
    request = normalize_body(
        {
            "type": "smartImage",
            "payload": {
                "topic": "x",
                "aspectRatio": "4:5",
                "facePosition": "top-left",
                "useBrandData": False,
                "coreData": {"niche": "fitness"},
                "schema": {"questions": []},
            },
        }
    )

    payload = request.payload
    assert payload.aspect_ratio == "4:5"
    assert payload.face_position == "top-left"
    assert payload.use_brand_data is False
    assert payload.core_data == {"niche": "fitness"}
    assert payload.json_schema == {"questions": []}


def test_invalid_field_type_is_a_validation_error():
    with pytest.raises(PayloadValidationError) as excinfo:
        normalize_body({"type": "dynamicGuideIterative", "payload": {"history": "not a list"}})

    assert excinfo.value.debug["receivedType"] == "dynamicGuideIterative"
    assert excinfo.value.debug["errors"][0]["loc"] == ["history"]
