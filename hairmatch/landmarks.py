# hairmatch/landmarks.py
"""Landmark data model (68-point layout) and structural validation."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence, Tuple

from .exceptions import InvalidLandmarksError

# 68-point layout slices
JAW = slice(0, 17)
NOSE = slice(27, 36)
LEFT_EYE = slice(36, 42)
RIGHT_EYE = slice(42, 48)
MOUTH = slice(48, 68)

NUM_POINTS = 68
JAW_POINTS = 17


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class LandmarkSet:
    """
    Landmarks of one detected face.

    jaw_outline runs from the image-left ear (0) round the chin (8) to the
    image-right ear (16); the classifier reads it positionally.
    """

    jaw_outline: Tuple[Point, ...] = field(default_factory=tuple)
    left_eye: Tuple[Point, ...] = field(default_factory=tuple)
    right_eye: Tuple[Point, ...] = field(default_factory=tuple)
    mouth: Tuple[Point, ...] = field(default_factory=tuple)
    nose: Optional[Tuple[Point, ...]] = None

    def to_dict(self):
        def pts(group):
            return [{"x": p.x, "y": p.y} for p in group]
        out = {
            "jaw_outline": pts(self.jaw_outline),
            "left_eye": pts(self.left_eye),
            "right_eye": pts(self.right_eye),
            "mouth": pts(self.mouth),
        }
        if self.nose is not None:
            out["nose"] = pts(self.nose)
        return out


def _points(raw: Iterable) -> Tuple[Point, ...]:
    out = []
    for p in raw:
        if isinstance(p, Point):
            out.append(p)
        else:
            x, y = p[0], p[1]
            out.append(Point(float(x), float(y)))
    return tuple(out)


def make_landmark_set(jaw_outline: Iterable, left_eye: Iterable, right_eye: Iterable,
                      mouth: Iterable, nose: Optional[Iterable] = None) -> LandmarkSet:
    """Build a LandmarkSet from Points or (x, y) pairs."""
    return LandmarkSet(
        jaw_outline=_points(jaw_outline),
        left_eye=_points(left_eye),
        right_eye=_points(right_eye),
        mouth=_points(mouth),
        nose=None if nose is None else _points(nose),
    )


def landmark_set_from_points(points: Sequence) -> LandmarkSet:
    """Slice a flat 68-point sequence (dlib / face-api layout) into groups."""
    if len(points) != NUM_POINTS:
        raise InvalidLandmarksError(f"Expected {NUM_POINTS} points, got {len(points)}")
    pts = _points(points)
    return LandmarkSet(
        jaw_outline=pts[JAW],
        left_eye=pts[LEFT_EYE],
        right_eye=pts[RIGHT_EYE],
        mouth=pts[MOUTH],
        nose=pts[NOSE],
    )


def validate_landmarks(landmarks: Optional[LandmarkSet]) -> None:
    """
    Check that every group the classifier reads is present and usable.

    Raises:
        InvalidLandmarksError: missing group, short jaw outline or a
            non-finite coordinate.
    """
    if landmarks is None:
        raise InvalidLandmarksError("No landmarks")

    groups = {
        "jaw_outline": landmarks.jaw_outline,
        "left_eye": landmarks.left_eye,
        "right_eye": landmarks.right_eye,
        "mouth": landmarks.mouth,
    }
    for name, group in groups.items():
        if not group:
            raise InvalidLandmarksError(f"Missing {name}")
        for p in group:
            if not (math.isfinite(p.x) and math.isfinite(p.y)):
                raise InvalidLandmarksError(f"Non-finite coordinate in {name}")

    if len(landmarks.jaw_outline) < JAW_POINTS:
        raise InvalidLandmarksError(
            f"jaw_outline needs {JAW_POINTS} points, got {len(landmarks.jaw_outline)}")
