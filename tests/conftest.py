from __future__ import annotations

import base64
import json
from typing import Any, Dict, List

import pytest

from shotlist.config import ShotListConfig


def data_url(payload: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(payload).decode('ascii')}"


def text_response(obj: Any) -> Dict[str, Any]:
    content = obj if isinstance(obj, str) else json.dumps(obj)
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def image_response(url: str) -> Dict[str, Any]:
    return {
        "choices": [
            {
                "message": {
                    "role": "assistant",
                    "content": "",
                    "images": [{"type": "image_url", "image_url": {"url": url}}],
                }
            }
        ]
    }


def shot_obj(number: int, shot_type: str = "Wide", description: str = "A man walks in.") -> Dict[str, Any]:
    return {
        "shot_number": number,
        "shot_type": shot_type,
        "description": description,
        "camera_angle": "Eye level",
        "lens": "35mm",
        "movement": "Static",
    }


class _FakeCompletions:
    def __init__(self, client: "FakeClient") -> None:
        self._client = client

    def create(self, **kwargs: Any) -> Any:
        self._client.calls.append(kwargs)
        if not self._client.responses:
            raise AssertionError("FakeClient: no queued response")
        resp = self._client.responses.pop(0)
        if isinstance(resp, Exception):
            raise resp
        return resp


class _FakeChat:
    def __init__(self, client: "FakeClient") -> None:
        self.completions = _FakeCompletions(client)


class FakeClient:
    """Stands in for ``openai.OpenAI``; replays queued responses in order."""

    def __init__(self, responses: List[Any] | None = None) -> None:
        self.responses: List[Any] = list(responses or [])
        self.calls: List[Dict[str, Any]] = []
        self.chat = _FakeChat(self)

    def prompt_text(self, index: int) -> str:
        content = self.calls[index]["messages"][0]["content"]
        return "\n".join(part["text"] for part in content if part.get("type") == "text")


@pytest.fixture
def cfg() -> ShotListConfig:
    return ShotListConfig(
        openrouter_api_key="test-key",
        analysis_model="test/analysis",
        image_model="test/image",
        request_timeout_sec=5,
    )


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()
