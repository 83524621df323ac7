from __future__ import annotations

from dataclasses import asdict
from types import SimpleNamespace

import pytest

from conftest import data_url, image_response, text_response
from shotlist.services import images
from shotlist.services.images import extract_image_data_url_from_response, render_shot
from shotlist.types import (
    CharacterDescription,
    ImageGenerationError,
    ScriptAnalysisResult,
    ShotDescription,
)

SHOT = ShotDescription(1, "Wide establishing", "A man walks into a bar.", "Eye level", "24mm", "Dolly in")
CONTEXT = ScriptAnalysisResult(
    character_descriptions=[CharacterDescription("Man", "Tall, grey coat")],
    shot_list=[SHOT],
)


def test_render_preserves_shot_fields(fake_client, cfg):
    url = data_url(b"image-1")
    fake_client.responses.append(image_response(url))

    generated = render_shot(fake_client, cfg, SHOT, CONTEXT, "Cinematic (Default)", "Default")

    assert generated.image_url == url
    assert generated.description_part() == SHOT
    assert {k: v for k, v in asdict(generated).items() if k != "image_url"} == asdict(SHOT)


def test_render_request_shape(fake_client, cfg):
    fake_client.responses.append(image_response(data_url(b"x")))

    render_shot(fake_client, cfg, SHOT, CONTEXT, "Claymation", "Extra wide")

    call = fake_client.calls[0]
    assert call["model"] == "test/image"
    assert call["extra_body"]["modalities"] == ["image", "text"]
    assert call["extra_body"]["image_config"] == {"aspect_ratio": "9:16"}
    prompt = fake_client.prompt_text(0)
    assert "[CHARACTER: Man - Tall, grey coat]" in prompt
    assert "The camera framing MUST be 'Extra wide'" in prompt


def test_render_without_image_fails(fake_client, cfg):
    fake_client.responses.append(text_response("I cannot draw that."))
    with pytest.raises(ImageGenerationError, match="Image generation failed"):
        render_shot(fake_client, cfg, SHOT, CONTEXT, "Claymation", "Default")


def test_extract_from_content_parts():
    url = data_url(b"part", mime="image/webp")
    resp = {"choices": [{"message": {"content": [{"type": "text", "text": "here"}, {"type": "image_url", "image_url": {"url": url}}]}}]}
    assert extract_image_data_url_from_response(resp) == url


def test_extract_from_inline_data_part():
    resp = {"choices": [{"message": {"content": [{"inline_data": {"mime_type": "image/png", "data": "AAAA"}}]}}]}
    assert extract_image_data_url_from_response(resp) == "data:image/png;base64,AAAA"


def test_extract_from_sdk_object():
    url = data_url(b"sdk")
    resp = SimpleNamespace(model_dump=lambda: image_response(url))
    assert extract_image_data_url_from_response(resp) == url


@pytest.mark.parametrize(
    "resp",
    [
        {"choices": []},
        {"choices": [{"message": {"content": "no image here"}}]},
        {"choices": [{"message": {"images": [{"image_url": {"url": "data:image/png;base64"}}]}}]},
        None,
    ],
)
def test_extract_returns_none_without_image(resp):
    assert extract_image_data_url_from_response(resp) is None


def test_extract_downloads_remote_url(monkeypatch):
    def fake_get(url, timeout):
        assert url == "https://cdn.example.com/shot.png"
        return SimpleNamespace(content=b"png-bytes", headers={"content-type": "image/png"}, raise_for_status=lambda: None)

    monkeypatch.setattr(images.requests, "get", fake_get)
    resp = image_response("https://cdn.example.com/shot.png")
    assert extract_image_data_url_from_response(resp) == data_url(b"png-bytes")


def test_extract_skips_malformed_part_before_valid_one():
    url = data_url(b"good")
    resp = {
        "choices": [
            {
                "message": {
                    "images": [
                        {"type": "image_url", "image_url": {"url": "data:image/png;base64"}},
                        {"type": "image_url", "image_url": {"url": url}},
                    ]
                }
            }
        ]
    }
    assert extract_image_data_url_from_response(resp) == url


def test_extract_rejects_non_image_download(monkeypatch):
    def fake_get(url, timeout):
        return SimpleNamespace(content=b"<html></html>", headers={"content-type": "text/html"}, raise_for_status=lambda: None)

    monkeypatch.setattr(images.requests, "get", fake_get)
    assert extract_image_data_url_from_response(image_response("https://cdn.example.com/oops")) is None
