from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from shotlist.services.prompts import DEFAULT_FRAMING, DEFAULT_STYLE
from shotlist.types import GeneratedShot, ScriptAnalysisResult, SessionBusyError, ShotDescription


@dataclass
class SessionState:
    """One user's shot list: the analysis context and the rendered history.

    ``analysis.shot_list`` and ``shots`` grow together; after a completed
    generate or add-scene action they have the same length and numbering.
    Only the Pipeline mutates them.
    """

    script: str = ""
    reference_image: Optional[str] = None
    style: str = DEFAULT_STYLE
    framing: str = DEFAULT_FRAMING

    analysis: Optional[ScriptAnalysisResult] = None
    shots: List[GeneratedShot] = field(default_factory=list)

    logs: List[str] = field(default_factory=list)

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def begin(self, script: str, reference_image: Optional[str], style: str, framing: str) -> None:
        self.script = script
        self.reference_image = reference_image
        self.style = style
        self.framing = framing
        self.analysis = None
        self.shots = []

    def record_render(self, generated: GeneratedShot) -> None:
        self.shots.append(generated)

    def keep_rendered_only(self) -> None:
        """Drop planned shots that were never rendered from the analysis."""
        if self.analysis is None:
            return
        rendered = self.analysis.shot_list[: len(self.shots)]
        self.analysis = ScriptAnalysisResult(
            character_descriptions=list(self.analysis.character_descriptions),
            product_descriptions=list(self.analysis.product_descriptions),
            shot_list=rendered,
        )

    def append_shot(self, description: ShotDescription, image_url: str) -> GeneratedShot:
        """Append a new shot to both the analysis and the visible history."""
        if self.analysis is None:
            raise RuntimeError("No analysis to extend")
        generated = GeneratedShot.from_description(description, image_url)
        self.analysis = self.analysis.with_shot(description)
        self.shots.append(generated)
        return generated

    def is_lockstep(self) -> bool:
        if self.analysis is None:
            return not self.shots
        planned = self.analysis.shot_list
        if len(planned) != len(self.shots):
            return False
        return all(p.shot_number == s.shot_number for p, s in zip(planned, self.shots))

    @property
    def in_progress(self) -> bool:
        return self._lock.locked()

    @property
    def can_add_scene(self) -> bool:
        return self.analysis is not None and bool(self.shots) and not self.in_progress and self.is_lockstep()

    @contextmanager
    def busy(self) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            raise SessionBusyError("Another action is already running for this session.")
        try:
            yield
        finally:
            self._lock.release()
