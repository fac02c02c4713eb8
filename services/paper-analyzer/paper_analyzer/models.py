"""Data models for paper analysis requests and dialogue scripts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


DetailLevel = Literal["brief", "detailed", "academic"]
Personality = Literal["tsundere", "gentle", "strict"]
Emotion = Literal["normal", "happy", "angry", "surprised", "shy", "proud"]

ALLOWED_EMOTIONS = frozenset([
    "normal", "happy", "angry", "surprised", "shy", "proud",
])


class AnalysisSettings(BaseModel):
    """Player-chosen options that select the prompt variants."""

    model_config = ConfigDict(frozen=True)

    detail_level: DetailLevel = "brief"
    personality: Personality = "tsundere"


class DialogueLine(BaseModel):
    model_config = ConfigDict(frozen=True)

    speaker: str
    text: str
    emotion: Emotion = "normal"
    note: Optional[str] = None  # explanation of a technical term


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    script: list[DialogueLine] = Field(default_factory=list)


@dataclass(frozen=True)
class AnalysisOutcome:
    """Typed result of one analysis run: either a script or the error that
    stopped it.  Converted to the fallback script only at the outer edge."""

    result: Optional[AnalysisResult] = None
    error: Optional[Exception] = None

    @property
    def success(self) -> bool:
        return self.error is None
