from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from .landmarks import LandmarkSet, make_landmark_set


class PointIn(BaseModel):
    x: float
    y: float


class LandmarkSetIn(BaseModel):
    # Missing groups default to empty so the classifier can report "no result".
    jaw_outline: List[PointIn] = Field(default_factory=list, description="17 points, ear to ear via the chin.")
    left_eye: List[PointIn] = Field(default_factory=list)
    right_eye: List[PointIn] = Field(default_factory=list)
    mouth: List[PointIn] = Field(default_factory=list)
    nose: Optional[List[PointIn]] = None

    def to_landmark_set(self) -> LandmarkSet:
        def pts(group):
            return [(p.x, p.y) for p in group]
        return make_landmark_set(
            pts(self.jaw_outline), pts(self.left_eye), pts(self.right_eye), pts(self.mouth),
            None if self.nose is None else pts(self.nose),
        )


class HairstyleSuggestion(BaseModel):
    id: int
    image_url: str


class FaceShapeResponse(BaseModel):
    face_shape: Optional[str] = None
    message: str
    description: Optional[str] = None
    characteristics: List[str] = Field(default_factory=list)
    recommended_hairstyles: List[int] = Field(default_factory=list)
    suggestions: List[HairstyleSuggestion] = Field(default_factory=list)
    debug: Optional[Dict[str, Any]] = None


class RecommendationResponse(BaseModel):
    face_shape: str
    hairstyles: List[int]
