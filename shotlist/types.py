from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class ShotListError(RuntimeError):
    """Base class for every failure surfaced by the shot list core."""


class InputValidationError(ShotListError, ValueError):
    pass


class InvalidImageError(InputValidationError):
    pass


class SchemaViolationError(ShotListError):
    pass


class ImageGenerationError(ShotListError):
    pass


class MissingCredentialError(ShotListError):
    pass


class SessionBusyError(ShotListError):
    pass


@dataclass(frozen=True)
class CharacterDescription:
    name: str
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ProductDescription:
    name: str
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ShotDescription:
    shot_number: int
    shot_type: str
    description: str
    camera_angle: str
    lens: str
    movement: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class GeneratedShot:
    shot_number: int
    shot_type: str
    description: str
    camera_angle: str
    lens: str
    movement: str
    image_url: str

    @classmethod
    def from_description(cls, shot: ShotDescription, image_url: str) -> "GeneratedShot":
        return cls(image_url=image_url, **asdict(shot))

    def description_part(self) -> ShotDescription:
        data = asdict(self)
        data.pop("image_url")
        return ShotDescription(**data)

    def to_dict(self) -> Dict[str, Any]:
        data = self.description_part().to_dict()
        data["imageUrl"] = self.image_url
        return data


@dataclass(frozen=True)
class ScriptAnalysisResult:
    character_descriptions: List[CharacterDescription] = field(default_factory=list)
    product_descriptions: List[ProductDescription] = field(default_factory=list)
    shot_list: List[ShotDescription] = field(default_factory=list)

    def with_shot(self, shot: ShotDescription) -> "ScriptAnalysisResult":
        """Return a copy whose shot list is extended by ``shot``."""
        return ScriptAnalysisResult(
            character_descriptions=list(self.character_descriptions),
            product_descriptions=list(self.product_descriptions),
            shot_list=[*self.shot_list, shot],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "character_descriptions": [c.to_dict() for c in self.character_descriptions],
            "product_descriptions": [p.to_dict() for p in self.product_descriptions],
            "shot_list": [s.to_dict() for s in self.shot_list],
        }


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Tagged result of a structured model call: either ``value`` or ``error``."""

    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "Outcome[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise SchemaViolationError(self.error)
        return self.value  # type: ignore[return-value]
