from __future__ import annotations
import os
from typing import List, Literal, Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field

# === Extraction ===

class ElementDescriptor(BaseModel):
    locator: str
    name: str
    count: int = Field(ge=1)


class BoundingInfo(BaseModel):
    isVisible: bool = False
    width: float = 0
    height: float = 0

    def qualifies(self, min_size: float) -> bool:
        return self.isVisible and self.width >= min_size and self.height >= min_size


HIDDEN = BoundingInfo()


class ExtractionConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    minElementSize: float = Field(default=5, ge=0)
    observationIntervalMs: int = Field(default=1000, gt=0)
    nameMaxLength: int = Field(default=50, ge=1)
    maxFrameDepth: int = Field(default=8, ge=0)

    @classmethod
    def from_env(cls, **overrides: Any) -> "ExtractionConfig":
        env = {
            "minElementSize": os.getenv("LOCATOR_MIN_ELEMENT_SIZE"),
            "observationIntervalMs": os.getenv("LOCATOR_OBSERVATION_INTERVAL_MS"),
            "nameMaxLength": os.getenv("LOCATOR_NAME_MAX_LENGTH"),
            "maxFrameDepth": os.getenv("LOCATOR_MAX_FRAME_DEPTH"),
        }
        data = {k: v for k, v in env.items() if v not in (None, "")}
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(data)

    @property
    def interval_seconds(self) -> float:
        return self.observationIntervalMs / 1000


class PassReport(BaseModel):
    candidates: int = 0
    qualifying: int = 0
    committed: int = 0
    skipped: int = 0
    parentsRemoved: int = 0
    frames: int = 0
    frameErrors: int = 0
    durationMs: float = 0

# === User flow ===

WaitForType = Literal["load", "domcontentloaded", "networkidle"]
ActionType = Literal[
    "navigate", "click", "fill",
    "waitForSelector", "waitForLoadState", "wait",
]

class WaitSpec(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    for_: WaitForType = Field(default="networkidle", alias="for")
    timeoutMs: int = 10000

class Instruction(BaseModel):
    action: ActionType
    url: Optional[str] = None
    selector: Optional[str] = None
    hasText: Optional[str] = None
    value: Optional[str] = None
    timeoutMs: Optional[int] = None
    waitAfter: Optional[WaitSpec] = None

class Flow(BaseModel):
    startUrl: Optional[str] = None
    instructions: List[Instruction] = Field(default_factory=list)

class ExecError(BaseModel):
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)

class ExecResult(BaseModel):
    ok: bool
    errors: List[ExecError] = Field(default_factory=list)
    url: Optional[str] = None
    title: Optional[str] = None
    logs: List[str] = Field(default_factory=list)
