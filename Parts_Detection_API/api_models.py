from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from partscan_kit.types import Detection


class DetectionRecord(BaseModel):
    x1: float
    y1: float
    x2: float
    y2: float
    label: str
    confidence: float

    @classmethod
    def from_detection(cls, det: Detection) -> "DetectionRecord":
        return cls(x1=det.x1, y1=det.y1, x2=det.x2, y2=det.y2, label=det.label, confidence=det.confidence)


class HealthResponse(BaseModel):
    status: str = Field(..., description="ok|not_loaded")
    model_loaded: bool
    providers: List[str]
