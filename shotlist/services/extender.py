from __future__ import annotations

from dataclasses import replace
from typing import Callable, List, Optional, Sequence

from openai import OpenAI

from shotlist.config import ShotListConfig
from shotlist.services import message_text
from shotlist.services.prompts import build_extension_prompt
from shotlist.services.storage import validate_reference_image
from shotlist.services.structured import SHOT_SCHEMA, parse_shot_output, response_format
from shotlist.types import GeneratedShot, InputValidationError, Outcome, ScriptAnalysisResult, ShotDescription


def next_shot_number(history: Sequence[GeneratedShot]) -> int:
    if not history:
        raise InputValidationError("Cannot add a scene before any shot has been generated.")
    return history[-1].shot_number + 1


def build_extension_messages(
    script: str,
    reference_image: Optional[str],
    context: ScriptAnalysisResult,
    history: Sequence[GeneratedShot],
    style: str,
    framing: str,
) -> List[dict]:
    # The reference image itself is not re-sent; the prompt only notes it was used.
    text = build_extension_prompt(
        script,
        context,
        history,
        style,
        framing,
        next_shot_number(history),
        has_reference_image=bool(reference_image),
    )
    return [{"role": "user", "content": [{"type": "text", "text": text}]}]


def extend_sequence(
    client: OpenAI,
    cfg: ShotListConfig,
    script: str,
    reference_image: Optional[str],
    context: ScriptAnalysisResult,
    history: Sequence[GeneratedShot],
    style: str,
    framing: str,
    on_log: Optional[Callable[[str], None]] = None,
) -> Outcome[ShotDescription]:
    """Ask for exactly one more shot that continues ``history``.

    The returned shot always carries ``history[-1].shot_number + 1``, whatever
    number the model wrote.
    """
    number = next_shot_number(history)
    reference_image = validate_reference_image(reference_image)
    messages = build_extension_messages(script, reference_image, context, history, style, framing)
    if on_log:
        on_log(f"Extender: calling {cfg.analysis_model} for shot {number} (timeout {cfg.request_timeout_sec}s)…")
    resp = client.chat.completions.create(
        model=cfg.analysis_model,
        messages=messages,
        response_format=response_format("next_shot", SHOT_SCHEMA),
        extra_headers=cfg.headers,
        timeout=cfg.request_timeout_sec,
    )
    text = message_text(resp)
    if on_log:
        on_log(f"Extender: received {len(text)} characters")
    outcome = parse_shot_output(text)
    if not outcome.ok:
        return outcome
    shot = outcome.unwrap()
    if shot.shot_number != number and on_log:
        on_log(f"Extender: model numbered the shot {shot.shot_number}; using {number}")
    return Outcome.success(replace(shot, shot_number=number))
