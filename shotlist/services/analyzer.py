from __future__ import annotations

from typing import Callable, List, Optional

from openai import OpenAI

from shotlist.config import ShotListConfig
from shotlist.services import message_text
from shotlist.services.prompts import build_analysis_prompt
from shotlist.services.storage import validate_reference_image
from shotlist.services.structured import ANALYSIS_SCHEMA, parse_analysis_output, response_format
from shotlist.types import InputValidationError, Outcome, ScriptAnalysisResult


def build_analysis_messages(script: str, reference_image: Optional[str], style: str, framing: str) -> List[dict]:
    content: List[dict] = []
    # The reference image goes first so the model reads it before the rules.
    if reference_image:
        content.append({"type": "image_url", "image_url": {"url": reference_image}})
    content.append(
        {
            "type": "text",
            "text": build_analysis_prompt(script, style, framing, has_reference_image=bool(reference_image)),
        }
    )
    return [{"role": "user", "content": content}]


def analyze_script(
    client: OpenAI,
    cfg: ShotListConfig,
    script: str,
    reference_image: Optional[str],
    style: str,
    framing: str,
    on_log: Optional[Callable[[str], None]] = None,
) -> Outcome[ScriptAnalysisResult]:
    """
    Ask the analysis model to decompose ``script`` into characters, products
    and an ordered shot list.

    Input problems raise before any request is made. Transport errors from
    the client propagate unchanged. A reply that does not match the analysis
    schema comes back as a failed Outcome.
    """
    script = (script or "").strip()
    if not script:
        raise InputValidationError("Please enter a script.")
    reference_image = validate_reference_image(reference_image)

    messages = build_analysis_messages(script, reference_image, style, framing)
    if on_log:
        image_note = "with reference image" if reference_image else "without reference image"
        on_log(f"Analyzer: calling {cfg.analysis_model} {image_note} (timeout {cfg.request_timeout_sec}s)…")
    resp = client.chat.completions.create(
        model=cfg.analysis_model,
        messages=messages,
        response_format=response_format("script_analysis", ANALYSIS_SCHEMA),
        extra_headers=cfg.headers,
        timeout=cfg.request_timeout_sec,
    )
    text = message_text(resp)
    if on_log:
        on_log(f"Analyzer: received {len(text)} characters")
    return parse_analysis_output(text)
