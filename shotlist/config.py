import os
from dataclasses import dataclass
from typing import Optional, Dict

from openai import OpenAI

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


def _get_env(key: str, default: str = "") -> str:
    return str(os.getenv(key, default))


@dataclass(frozen=True)
class ShotListConfig:
    openrouter_api_key: str
    analysis_model: str
    image_model: str
    request_timeout_sec: int
    aspect_ratio: str = "9:16"
    http_referer: str = "http://localhost"
    app_title: str = "Cinematic Shot List Generator"

    @property
    def headers(self) -> Dict[str, str]:
        # OpenRouter recommends sending HTTP-Referer and X-Title
        return {"HTTP-Referer": self.http_referer, "X-Title": self.app_title}


def load_config() -> ShotListConfig:
    return ShotListConfig(
        openrouter_api_key=_get_env("OPENROUTER_API_KEY"),
        analysis_model=_get_env("SHOTLIST_ANALYSIS_MODEL", "google/gemini-2.5-pro"),
        image_model=_get_env("SHOTLIST_IMAGE_MODEL", "google/gemini-2.5-flash-image"),
        request_timeout_sec=int(_get_env("SHOTLIST_REQUEST_TIMEOUT_SEC", "120")),
        aspect_ratio=_get_env("SHOTLIST_ASPECT_RATIO", "9:16"),
        http_referer=_get_env("SHOTLIST_HTTP_REFERER", "http://localhost"),
        app_title=_get_env("SHOTLIST_APP_TITLE", "Cinematic Shot List Generator"),
    )


def create_openrouter_client(api_key: Optional[str] = None, cfg: Optional[ShotListConfig] = None) -> OpenAI:
    cfg = cfg or load_config()
    key = api_key or cfg.openrouter_api_key
    client = OpenAI(
        api_key=key,
        base_url=OPENROUTER_BASE_URL,
        default_headers=cfg.headers,
    )
    return client
