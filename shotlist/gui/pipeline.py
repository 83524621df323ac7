from __future__ import annotations

from typing import Callable, Iterator, List, Optional

from openai import OpenAI

from shotlist.config import ShotListConfig, create_openrouter_client, load_config
from shotlist.gui.state import SessionState
from shotlist.services.analyzer import analyze_script
from shotlist.services.extender import extend_sequence
from shotlist.services.images import render_shot
from shotlist.services.storage import compress_image_bytes_to_jpeg_data_url, export_shot_list, validate_reference_image
from shotlist.types import GeneratedShot, InputValidationError, MissingCredentialError


class Pipeline:
    """Thin, UI-oriented wrapper over the service functions.

    Responsibilities:
    - Own `cfg` and OpenAI client lifecycle
    - Run the generate and add-scene actions against a SessionState
    - Centralize logging through an injected callback
    """

    def __init__(
        self,
        cfg: Optional[ShotListConfig] = None,
        on_log: Optional[Callable[[str], None]] = None,
        client: Optional[OpenAI] = None,
    ) -> None:
        self.on_log: Callable[[str], None] = on_log or (lambda _msg: None)
        self.on_log("🔧 Initializing Pipeline...")

        self.cfg: ShotListConfig = cfg or load_config()
        self.on_log(f"📋 Loaded configuration: analysis_model={self.cfg.analysis_model}, image_model={self.cfg.image_model}")

        if client is None:
            if not self.cfg.openrouter_api_key:
                self.on_log("❌ OPENROUTER_API_KEY is not set")
                raise MissingCredentialError("OPENROUTER_API_KEY environment variable not set")
            client = create_openrouter_client(self.cfg.openrouter_api_key, cfg=self.cfg)
            self.on_log("🔗 OpenRouter client initialized successfully")
        self.client: OpenAI = client
        self.on_log("✅ Pipeline initialization complete")

    # ---------- Helpers ----------
    def prepare_reference_image(self, image_bytes: bytes, *, max_width: int = 1024, quality: int = 85) -> str:
        self.on_log(f"🖼️  Encoding reference image (max_width={max_width}, quality={quality})...")
        result = compress_image_bytes_to_jpeg_data_url(image_bytes, max_width=max_width, quality=quality)
        self.on_log("✅ Reference image encoded")
        return result

    def export(self, session: SessionState, directory: str) -> List[str]:
        if session.analysis is None or not session.shots:
            raise InputValidationError("Nothing to export yet.")
        paths = export_shot_list(session.analysis, session.shots, directory)
        self.on_log(f"💾 Exported {len(session.shots)} shots to {directory}")
        return paths

    # ---------- High level flows ----------
    def generate(
        self,
        session: SessionState,
        script: str,
        reference_image: Optional[str],
        style: str,
        framing: str,
    ) -> Iterator[GeneratedShot]:
        """Analyze the script, then render its shots one at a time.

        Each rendered shot is appended to ``session.shots`` and yielded before
        the next render starts. If a render fails, the error propagates and the
        shots already yielded stay in the session.

        When the run stops early (a failed render, or the caller closing the
        stream) the session analysis is cut back to the rendered shots so a
        later add-scene continues from the last visible shot. The session
        stays busy while the stream is suspended; call ``close()`` on it when
        abandoning iteration.
        """
        with session.busy():
            script = (script or "").strip()
            if not script:
                raise InputValidationError("Please enter a script.")
            reference_image = validate_reference_image(reference_image)
            session.begin(script, reference_image, style, framing)

            self.on_log("🎬 Analyzing script and setting up scenes...")
            try:
                outcome = analyze_script(
                    self.client, self.cfg, script, reference_image, style, framing, on_log=self.on_log
                )
                analysis = outcome.unwrap()
            except Exception as e:
                self.on_log(f"❌ Script analysis failed: {e}")
                raise
            session.analysis = analysis
            total = len(analysis.shot_list)
            self.on_log(
                f"✅ Script analysis complete ({len(analysis.character_descriptions)} characters, "
                f"{len(analysis.product_descriptions)} products, {total} shots)"
            )

            try:
                for i, shot in enumerate(analysis.shot_list, start=1):
                    self.on_log(f"🎨 Generating shot {i} of {total}...")
                    try:
                        generated = render_shot(
                            self.client, self.cfg, shot, analysis, style, framing, on_log=self.on_log
                        )
                    except Exception as e:
                        self.on_log(f"❌ Shot {shot.shot_number} generation failed: {e}")
                        raise
                    session.record_render(generated)
                    self.on_log(f"✅ Shot {shot.shot_number} generated")
                    yield generated
            finally:
                if len(session.shots) < total:
                    session.keep_rendered_only()
                    self.on_log(f"✂️ Shot list cut back to {len(session.shots)} rendered shots")

            self.on_log("🎉 Shot list complete")

    def add_scene(self, session: SessionState) -> GeneratedShot:
        """Extend the session by one shot: describe it, render it, then store both."""
        with session.busy():
            if session.analysis is None or not session.shots:
                raise InputValidationError("Generate a shot list before adding a scene.")
            if not session.is_lockstep():
                raise InputValidationError("The shot list and the rendered shots are out of step.")
            self.on_log("➕ Adding scene...")
            try:
                description = extend_sequence(
                    self.client,
                    self.cfg,
                    session.script,
                    session.reference_image,
                    session.analysis,
                    session.shots,
                    session.style,
                    session.framing,
                    on_log=self.on_log,
                ).unwrap()
                generated = render_shot(
                    self.client,
                    self.cfg,
                    description,
                    session.analysis,
                    session.style,
                    session.framing,
                    on_log=self.on_log,
                )
            except Exception as e:
                self.on_log(f"❌ Failed to add a new scene: {e}")
                raise
            stored = session.append_shot(description, generated.image_url)
            self.on_log(f"✅ Shot {stored.shot_number} added")
            return stored
