from __future__ import annotations

import pytest

from conftest import data_url, shot_obj, text_response
from shotlist.services.extender import extend_sequence, next_shot_number
from shotlist.services.structured import SHOT_SCHEMA
from shotlist.types import (
    CharacterDescription,
    GeneratedShot,
    InputValidationError,
    InvalidImageError,
    ScriptAnalysisResult,
    ShotDescription,
)


def _history(n):
    return [
        GeneratedShot.from_description(
            ShotDescription(i, "Wide", f"Beat {i}", "Eye level", "24mm", "Static"), data_url(f"img{i}".encode())
        )
        for i in range(1, n + 1)
    ]


def _context(history):
    return ScriptAnalysisResult(
        character_descriptions=[CharacterDescription("Man", "Tall, grey coat")],
        shot_list=[s.description_part() for s in history],
    )


@pytest.mark.parametrize("returned", [99, 1, 0, -4, 4])
def test_shot_number_is_overwritten(fake_client, cfg, returned):
    history = _history(3)
    fake_client.responses.append(text_response(shot_obj(returned, "Medium", "He leaves.")))

    outcome = extend_sequence(
        fake_client, cfg, "A man walks into a bar.", None, _context(history), history, "Claymation", "Default"
    )

    shot = outcome.unwrap()
    assert shot.shot_number == 4
    assert shot.description == "He leaves."


def test_next_number_follows_last_shot_not_length(fake_client, cfg):
    history = _history(2)
    history[-1] = GeneratedShot.from_description(
        ShotDescription(7, "Wide", "Beat 7", "Eye level", "24mm", "Static"), data_url(b"x")
    )
    assert next_shot_number(history) == 8


def test_request_contains_history_and_does_not_mutate(fake_client, cfg):
    history = _history(2)
    context = _context(history)
    fake_client.responses.append(text_response(shot_obj(3)))

    extend_sequence(fake_client, cfg, "A man walks into a bar.", data_url(b"ref"), context, history, "Claymation", "Wide")

    call = fake_client.calls[0]
    assert call["model"] == "test/analysis"
    assert call["response_format"]["json_schema"]["schema"] == SHOT_SCHEMA
    prompt = fake_client.prompt_text(0)
    assert "The new shot number must be 3." in prompt
    assert "Shot 1 (Wide): Beat 1\nShot 2 (Wide): Beat 2" in prompt
    assert "Man: Tall, grey coat" in prompt
    assert len(history) == 2
    assert len(context.shot_list) == 2


def test_empty_history_rejected(fake_client, cfg):
    with pytest.raises(InputValidationError):
        extend_sequence(fake_client, cfg, "Script", None, ScriptAnalysisResult(), [], "Claymation", "Default")
    assert fake_client.calls == []


def test_malformed_reference_image_rejected(fake_client, cfg):
    history = _history(1)
    with pytest.raises(InvalidImageError):
        extend_sequence(fake_client, cfg, "Script", "data:image/png;base64", _context(history), history, "C", "Default")
    assert fake_client.calls == []


def test_schema_violation_is_a_failed_outcome(fake_client, cfg):
    history = _history(1)
    bad = shot_obj(2)
    del bad["movement"]
    fake_client.responses.append(text_response(bad))

    outcome = extend_sequence(fake_client, cfg, "Script", None, _context(history), history, "C", "Default")

    assert not outcome.ok
    assert "movement" in outcome.error


@pytest.mark.parametrize("number", ["NaN", "Infinity"])
def test_non_finite_shot_number_is_a_failed_outcome(fake_client, cfg, number):
    history = _history(1)
    body = '{"shot_number": %s, "shot_type": "W", "description": "d", "camera_angle": "a", "lens": "l", "movement": "m"}'
    fake_client.responses.append(text_response(body % number))

    outcome = extend_sequence(fake_client, cfg, "Script", None, _context(history), history, "C", "Default")

    assert not outcome.ok
    assert "shot_number" in outcome.error
