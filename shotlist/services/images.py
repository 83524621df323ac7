from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional

import requests
from openai import OpenAI

from shotlist.config import ShotListConfig
from shotlist.services.prompts import build_render_prompt
from shotlist.services.storage import DATA_URL_RE, bytes_to_data_url
from shotlist.types import GeneratedShot, ImageGenerationError, ScriptAnalysisResult, ShotDescription

NO_IMAGE_MESSAGE = "Image generation failed or returned no data."


def build_image_messages(prompt: str) -> List[dict]:
    return [{"role": "user", "content": [{"type": "text", "text": prompt}]}]


def _is_remote(ref: str) -> bool:
    return ref.startswith("http://") or ref.startswith("https://")


def _download_as_data_url(url: str, timeout_sec: int = 30) -> Optional[str]:
    resp = requests.get(url, timeout=timeout_sec)
    resp.raise_for_status()
    mime = resp.headers.get("content-type", "image/png").split(";")[0].strip() or "image/png"
    if not mime.startswith("image/") or not resp.content:
        return None
    return bytes_to_data_url(resp.content, mime=mime)


def _image_from_part(part: Any) -> Optional[str]:
    """Return the image reference carried by one content part, if any."""
    if isinstance(part, str):
        return part if part.startswith("data:image/") else None
    if not isinstance(part, dict):
        return None
    # OpenRouter: {"type": "image_url", "image_url": {"url": ...}}
    image_url = part.get("image_url")
    if isinstance(image_url, dict):
        image_url = image_url.get("url")
    if isinstance(image_url, str) and image_url:
        return image_url
    # Gemini-style inline data: {"inline_data": {"mime_type": ..., "data": ...}}
    inline = part.get("inline_data") or part.get("inlineData")
    if isinstance(inline, dict):
        mime = inline.get("mime_type") or inline.get("mimeType")
        data = inline.get("data")
        if mime and data:
            return f"data:{mime};base64,{data}"
    return None


def _first_image(parts: Iterable[Any]) -> Optional[str]:
    for part in parts:
        found = _image_from_part(part)
        # A malformed part must not hide a usable one later in the list.
        if found and (_is_remote(found) or DATA_URL_RE.match(found)):
            return found
    return None


def extract_image_data_url_from_response(resp: Any, timeout_sec: int = 30) -> Optional[str]:
    """Extract a data URL from either an OpenAI SDK object or an HTTP JSON dict.

    Looks at the ``images`` array (OpenRouter extension) first, then at the
    message content parts. Remote ``http(s)`` image URLs are downloaded and
    converted. Returns ``None`` when the response carries no image.
    """
    if hasattr(resp, "model_dump"):
        resp = resp.model_dump()
    if not isinstance(resp, dict):
        return None
    choices = resp.get("choices") or []
    if not choices:
        return None
    msg: Dict[str, Any] = choices[0].get("message") or {}

    found = _first_image(msg.get("images") or [])
    if not found:
        content = msg.get("content")
        if isinstance(content, list):
            found = _first_image(content)
        elif isinstance(content, str) and content.strip().startswith("data:image/"):
            found = content.strip()
    if not found:
        return None
    if _is_remote(found):
        return _download_as_data_url(found, timeout_sec=timeout_sec)
    if not DATA_URL_RE.match(found):
        return None
    return found


def generate_image(
    client: OpenAI,
    cfg: ShotListConfig,
    prompt: str,
    on_log: Optional[Callable[[str], None]] = None,
) -> str:
    if on_log:
        on_log(f"Images: calling {cfg.image_model}…")
    resp = client.chat.completions.create(
        model=cfg.image_model,
        messages=build_image_messages(prompt),
        extra_headers=cfg.headers,
        extra_body={
            "modalities": ["image", "text"],
            "image_config": {"aspect_ratio": cfg.aspect_ratio},
        },
        stream=False,
        timeout=cfg.request_timeout_sec,
    )
    data_url = extract_image_data_url_from_response(resp)
    if not data_url:
        raise ImageGenerationError(NO_IMAGE_MESSAGE)
    if on_log:
        on_log(f"Images: received image data url length={len(data_url)}")
    return data_url


def render_shot(
    client: OpenAI,
    cfg: ShotListConfig,
    shot: ShotDescription,
    context: ScriptAnalysisResult,
    style: str,
    framing: str,
    on_log: Optional[Callable[[str], None]] = None,
) -> GeneratedShot:
    """Render one shot and return it with the image attached; ``shot`` itself is left untouched."""
    prompt = build_render_prompt(shot, context, style, framing, aspect_ratio=cfg.aspect_ratio)
    image_url = generate_image(client, cfg, prompt, on_log=on_log)
    return GeneratedShot.from_description(shot, image_url)
