from dataclasses import dataclass
from typing import List, Tuple, Union


@dataclass
class Candidate:
    """
    Box decoded from one anchor, before suppression. Coordinates are in original image pixels.
    """

    x1: float
    y1: float
    x2: float
    y2: float
    class_id: int
    confidence: float

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x1, self.y1, self.x2, self.y2


@dataclass(frozen=True)
class Detection:
    """
    Final detection returned to callers.
    """

    x1: float
    y1: float
    x2: float
    y2: float
    label: str
    confidence: float

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x1, self.y1, self.x2, self.y2

    def as_row(self) -> List[Union[float, str]]:
        # [x1, y1, x2, y2, label, confidence]
        return [self.x1, self.y1, self.x2, self.y2, self.label, self.confidence]
