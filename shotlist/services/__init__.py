from typing import Any, Tuple

import requests

from shotlist.config import OPENROUTER_BASE_URL


def connectivity_probe(url: str = OPENROUTER_BASE_URL, timeout_sec: int = 5) -> Tuple[bool, str]:
    try:
        resp = requests.get(url, timeout=timeout_sec)
        return (resp.ok, f"HTTP {resp.status_code}")
    except requests.RequestException as e:
        return (False, str(e))


def openrouter_models_probe(api_key: str, timeout_sec: int = 8) -> Tuple[bool, str]:
    try:
        resp = requests.get(
            f"{OPENROUTER_BASE_URL}/models",
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout_sec,
        )
        if resp.ok:
            return True, f"HTTP {resp.status_code}, {len(resp.json().get('data', []))} models"
        return False, f"HTTP {resp.status_code}: {resp.text[:200]}"
    except requests.RequestException as e:
        return False, str(e)


def message_text(resp: Any) -> str:
    """Return the first choice's text content from an SDK object or HTTP JSON dict."""
    text = ""
    if resp is None:
        return text
    if hasattr(resp, "choices"):
        text = (resp.choices[0].message.content or "") if resp.choices else ""
    elif isinstance(resp, dict):
        choices = resp.get("choices", [])
        if choices:
            msg = choices[0].get("message", {})
            text = msg.get("content", "") or ""
    if not isinstance(text, str):
        return ""
    return text
