# hairmatch/face_shape.py
from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from .exceptions import InvalidLandmarksError
from .landmarks import LandmarkSet, Point, validate_landmarks
from .settings import ClassifierConfig

logger = logging.getLogger(__name__)


class FaceShape(str, Enum):
    # declaration order is the tie-break order
    OVAL = "oval"
    ROUND = "round"
    SQUARE = "square"
    HEART = "heart"
    LONG = "long"
    DIAMOND = "diamond"


# ---------------- Tunables ----------------
# jaw outline indices (68-point layout)
J_CHEEK_L, J_CHEEK_R = 1, 15
J_MIDCHEEK_L, J_MIDCHEEK_R = 2, 14
J_CORNER_L, J_CORNER_R = 3, 13
J_CHIN = 8

DEFINITIVE_HEART_FOREHEAD_JAW_RATIO = 1.4
DEFINITIVE_HEART_TAPERING = 0.4
DEFINITIVE_SCORE = 100
OVAL_CHIN_RATIO = 0.17
TIE_MARGIN = 3
# ------------------------------------------


@dataclass(frozen=True)
class Measurements:
    face_width_at_cheeks: float
    face_center_x: float
    cheek_fullness: float
    face_width: float
    forehead_top: float
    face_height: float
    face_circularity: float
    roundness_coefficient: float
    cheek_curvature: float
    chin_length: float
    chin_ratio: float
    jaw_width: float
    eye_width: float
    forehead_width: float
    upper_face_width: float
    jaw_angle: float
    jaw_roundness: float
    width_to_height_ratio: float
    jaw_to_forehead_ratio: float
    forehead_to_jaw_ratio: float
    upper_to_lower_face_width_ratio: float
    top_third_width: float
    mid_third_width: float
    bottom_third_width: float
    chin_pointedness: float
    face_tapering: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass
class FaceShapeAnalysis:
    face_shape: FaceShape
    scores: Dict[FaceShape, int]
    measurements: Measurements
    decided_by: str
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "face_shape": self.face_shape.value,
            "scores": {s.value: v for s, v in self.scores.items()},
            "measurements": {k: round(v, 4) for k, v in self.measurements.to_dict().items()},
            "decided_by": self.decided_by,
            "notes": list(self.notes),
        }


def _empty_scores() -> Dict[FaceShape, int]:
    return {s: 0 for s in FaceShape}


def _angle_at_point(a: Point, b: Point, c: Point) -> float:
    bax, bay = a.x-b.x, a.y-b.y
    bcx, bcy = c.x-b.x, c.y-b.y
    na, nc = math.hypot(bax, bay), math.hypot(bcx, bcy)
    if na == 0 or nc == 0:
        raise InvalidLandmarksError("Zero-length jaw vector, angle undefined")
    cosv = max(-1.0, min(1.0, (bax*bcx+bay*bcy)/(na*nc)))
    return math.degrees(math.acos(cosv))


def _ratio(num: float, den: float, what: str) -> float:
    if den == 0:
        raise InvalidLandmarksError(f"Degenerate geometry: {what} is zero")
    return num / den


def measure(landmarks: LandmarkSet, config: Optional[ClassifierConfig] = None) -> Measurements:
    """
    Derive the geometric measurements used for scoring.

    Raises:
        InvalidLandmarksError: structurally invalid input or degenerate
            geometry (non-positive width/height, zero-length vectors).
    """
    config = config or ClassifierConfig()
    validate_landmarks(landmarks)

    jaw = landmarks.jaw_outline
    eyes = landmarks.left_eye + landmarks.right_eye

    cheek_l, cheek_r = jaw[J_CHEEK_L], jaw[J_CHEEK_R]
    face_width_at_cheeks = cheek_r.x - cheek_l.x
    face_center_x = (cheek_l.x + cheek_r.x) / 2

    mid_l, mid_r = jaw[J_MIDCHEEK_L], jaw[J_MIDCHEEK_R]
    cheek_fullness = _ratio((face_center_x - mid_l.x) + (mid_r.x - face_center_x),
                            face_width_at_cheeks, "face width at cheeks")

    xs = [p.x for p in jaw]
    face_width = max(xs) - min(xs)

    forehead_top = min(p.y for p in eyes) - config.forehead_top_offset
    chin = jaw[J_CHIN]
    face_height = chin.y - forehead_top

    if face_width <= 0 or face_height <= 0:
        raise InvalidLandmarksError(
            f"Invalid facial measurements: width={face_width}, height={face_height}")

    face_circularity = min(face_width, face_height) / max(face_width, face_height)
    if abs(face_width - face_height) < face_width * 0.1:
        roundness_coefficient = 2.0
    else:
        roundness_coefficient = 1 - abs(face_width - face_height) / face_width

    corner_l, corner_r = jaw[J_CORNER_L], jaw[J_CORNER_R]
    curvature_l = _ratio(abs(mid_l.y - corner_l.y), face_center_x - mid_l.x, "left cheek offset")
    curvature_r = _ratio(abs(mid_r.y - corner_r.y), mid_r.x - face_center_x, "right cheek offset")
    cheek_curvature = (curvature_l + curvature_r) / 2

    mouth_bottom = max(p.y for p in landmarks.mouth)
    chin_length = chin.y - mouth_bottom
    chin_ratio = chin_length / face_height

    jaw_width = corner_r.x - corner_l.x

    eye_width = max(p.x for p in landmarks.right_eye) - min(p.x for p in landmarks.left_eye)
    forehead_width = max(eye_width * config.forehead_eye_factor,
                         face_width * config.forehead_face_factor)
    upper_face_width = max(forehead_width, face_width * config.upper_face_factor)

    jaw_angle = _angle_at_point(corner_l, chin, corner_r)

    jaw_to_forehead_ratio = jaw_width / forehead_width
    forehead_to_jaw_ratio = _ratio(1.0, jaw_to_forehead_ratio, "jaw width")

    return Measurements(
        face_width_at_cheeks=face_width_at_cheeks,
        face_center_x=face_center_x,
        cheek_fullness=cheek_fullness,
        face_width=face_width,
        forehead_top=forehead_top,
        face_height=face_height,
        face_circularity=face_circularity,
        roundness_coefficient=roundness_coefficient,
        cheek_curvature=cheek_curvature,
        chin_length=chin_length,
        chin_ratio=chin_ratio,
        jaw_width=jaw_width,
        eye_width=eye_width,
        forehead_width=forehead_width,
        upper_face_width=upper_face_width,
        jaw_angle=jaw_angle,
        jaw_roundness=180 - jaw_angle,
        width_to_height_ratio=face_width / face_height,
        jaw_to_forehead_ratio=jaw_to_forehead_ratio,
        forehead_to_jaw_ratio=forehead_to_jaw_ratio,
        upper_to_lower_face_width_ratio=_ratio(upper_face_width, jaw_width, "jaw width"),
        top_third_width=forehead_width,
        mid_third_width=face_width_at_cheeks,
        bottom_third_width=jaw_width,
        chin_pointedness=jaw_angle,
        face_tapering=(forehead_width - jaw_width) / forehead_width,
    )


# ---------------- Tie-breaks ----------------
# Each resolver returns (shape, reason) or None to keep the plain maximum.
TieResult = Optional[Tuple[FaceShape, str]]


def _oval_vs_heart(m: Measurements) -> TieResult:
    if m.forehead_to_jaw_ratio > 1.22:
        return FaceShape.HEART, "forehead-to-jaw ratio"
    if m.face_tapering > 0.28:
        return FaceShape.HEART, "face tapering"
    if m.upper_to_lower_face_width_ratio > 1.18:
        return FaceShape.HEART, "upper-to-lower face width ratio"
    if m.chin_pointedness > 68:
        return FaceShape.HEART, "pointed chin"
    if abs(m.jaw_to_forehead_ratio - 1.0) < 0.12 and m.chin_ratio > 0.15:
        return FaceShape.OVAL, "balanced proportions and good chin ratio"
    return None


def _oval_vs_round(m: Measurements) -> TieResult:
    if m.width_to_height_ratio > 0.8:
        return FaceShape.ROUND, "width-to-height ratio"
    if m.width_to_height_ratio < 0.7:
        return FaceShape.OVAL, "width-to-height ratio"
    if m.jaw_roundness > 130:
        return FaceShape.ROUND, "jaw roundness"
    if m.face_circularity > 0.87:
        return FaceShape.ROUND, "face circularity"
    if m.roundness_coefficient > 0.7:
        return FaceShape.ROUND, "roundness coefficient"
    if m.chin_ratio > 0.16:
        return FaceShape.OVAL, "chin length"
    if m.cheek_fullness < 0.33:
        return FaceShape.OVAL, "low cheek fullness"
    if m.cheek_fullness > 0.38:
        return FaceShape.ROUND, "high cheek fullness"
    return FaceShape.ROUND, "default in ambiguous case"


def _oval_vs_long(m: Measurements) -> TieResult:
    if m.width_to_height_ratio < 0.65:
        return FaceShape.LONG, "low width-to-height ratio"
    if m.width_to_height_ratio > 0.72:
        return FaceShape.OVAL, "width-to-height ratio"
    return FaceShape.LONG, "default in ambiguous case"


def _oval_vs_square(m: Measurements) -> TieResult:
    if m.jaw_to_forehead_ratio > 1.05:
        return FaceShape.SQUARE, "jaw-to-forehead ratio"
    if abs(m.top_third_width - m.bottom_third_width) < m.top_third_width * 0.12:
        return FaceShape.SQUARE, "similar widths throughout face"
    return None


TIE_BREAKERS: Dict[frozenset, Callable[[Measurements], TieResult]] = {
    frozenset({FaceShape.OVAL, FaceShape.HEART}): _oval_vs_heart,
    frozenset({FaceShape.OVAL, FaceShape.ROUND}): _oval_vs_round,
    frozenset({FaceShape.OVAL, FaceShape.LONG}): _oval_vs_long,
    frozenset({FaceShape.OVAL, FaceShape.SQUARE}): _oval_vs_square,
}
# --------------------------------------------


class FaceShapeClassifier:
    """
    Rule-based face-shape classifier over 68-point landmarks.

    Pipeline: measurements -> banded scoring -> definitive overrides
    (heart, round) -> chin-ratio adjustment -> winner with tie-breaks.
    Instances hold only configuration, so one classifier can be shared
    between concurrent callers.
    """

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self.config = config or ClassifierConfig()

    def _trace(self, msg: str, *args) -> None:
        if self.config.trace:
            logger.debug(msg, *args)

    # ---------------- Public API ----------------
    def classify(self, landmarks: LandmarkSet) -> Optional[FaceShape]:
        """Return the face shape, or None when the landmarks are unusable."""
        analysis = self.analyze(landmarks)
        return analysis.face_shape if analysis else None

    def analyze(self, landmarks: LandmarkSet) -> Optional[FaceShapeAnalysis]:
        try:
            m = measure(landmarks, self.config)
        except InvalidLandmarksError as e:
            logger.warning("Cannot classify face shape: %s", e)
            return None

        self._trace("Facial measurements: %s", m.to_dict())

        scores = self.score_measurements(m)

        definitive = self._definitive_shape(m)
        if definitive is not None:
            shape, reason = definitive
            scores = _empty_scores()
            scores[shape] = DEFINITIVE_SCORE
            self._trace("DEFINITIVE RULE: %s (%s)", shape.value, reason)
            return FaceShapeAnalysis(shape, scores, m, f"definitive {shape.value}: {reason}")

        self._apply_chin_ratio(m, scores)
        shape, decided_by = self.select_shape(scores, m)
        self._trace("Detected face shape: %s (%s), scores=%s",
                    shape.value, decided_by, {s.value: v for s, v in scores.items()})
        return FaceShapeAnalysis(shape, scores, m, decided_by)

    # ---------------- Scoring ----------------
    def score_measurements(self, m: Measurements) -> Dict[FaceShape, int]:
        """Banded scoring; rules are applied in a fixed order."""
        s = _empty_scores()
        O, R, SQ, H, L, D = (FaceShape.OVAL, FaceShape.ROUND, FaceShape.SQUARE,
                             FaceShape.HEART, FaceShape.LONG, FaceShape.DIAMOND)

        # width to height: round vs oval vs long
        whr = m.width_to_height_ratio
        if whr > 0.95:
            s[R] += 5
            s[O] -= 3
            self._trace("Very high width-to-height ratio %.3f indicates round face", whr)
        elif 0.85 <= whr <= 0.95:
            s[R] += 3
            s[O] -= 1
            self._trace("High width-to-height ratio %.3f indicates round face", whr)
        elif 0.78 <= whr < 0.85:
            s[R] += 1
        elif 0.67 <= whr < 0.75:
            s[O] += 2
            self._trace("Width-to-height ratio %.3f in range for oval face", whr)
        elif 0.62 <= whr <= 0.67:
            s[L] += 2
            s[O] += 1
        elif whr < 0.62:
            s[L] += 4
            s[O] -= 1

        rc = m.roundness_coefficient
        if rc > 0.85:
            s[R] += 8
            s[O] -= 3
            self._trace("Very high roundness coefficient %.3f", rc)
        elif rc > 0.75:
            s[R] += 5
            s[O] -= 2
            self._trace("High roundness coefficient %.3f", rc)
        elif rc > 0.65:
            s[R] += 2

        circ = m.face_circularity
        if circ > 0.95:
            s[R] += 7
            s[O] -= 3
            self._trace("Very high face circularity %.3f", circ)
        elif circ > 0.9:
            s[R] += 5
            s[O] -= 2
        elif circ > 0.85:
            s[R] += 3
            s[O] -= 1

        # flatter cheek curve reads as round
        if m.cheek_curvature < 0.4:
            s[R] += 4
            s[O] -= 2
            self._trace("Low cheek curvature %.3f indicates full cheeks", m.cheek_curvature)
        elif m.cheek_curvature < 0.6:
            s[R] += 2
            s[O] -= 1

        jtf = m.jaw_to_forehead_ratio
        if 0.92 < jtf < 1.08:
            s[O] += 1
            s[R] += 1 if whr > 0.85 else 0
        elif 1.08 <= jtf < 1.18:
            s[SQ] += 3
        elif jtf >= 1.18:
            s[SQ] += 4
        elif 0.82 < jtf <= 0.92:
            s[H] += 2
        elif 0.72 < jtf <= 0.82:
            s[H] += 3
        elif jtf <= 0.72:
            s[H] += 4

        ftj = m.forehead_to_jaw_ratio
        if 1.15 < ftj < 1.3:
            s[H] += 2
            self._trace("Forehead-to-jaw ratio %.3f indicates possible heart shape", ftj)
        elif ftj >= 1.3:
            s[H] += 4
            s[O] -= 1
            self._trace("High forehead-to-jaw ratio %.3f strongly indicates heart shape", ftj)

        ul = m.upper_to_lower_face_width_ratio
        if 1.2 < ul < 1.35:
            s[H] += 2
        elif ul >= 1.35:
            s[H] += 4
            s[O] -= 2

        tap = m.face_tapering
        if 0.25 < tap < 0.35:
            s[H] += 2
        elif tap >= 0.35:
            s[H] += 3
            s[O] -= 1

        cp = m.chin_pointedness
        if 65 < cp < 75:
            s[H] += 1
        elif cp >= 75:
            s[H] += 2

        top, mid, bottom = m.top_third_width, m.mid_third_width, m.bottom_third_width
        # diamond: widest at the cheekbones
        if mid > top and mid > bottom:
            r1, r2 = mid / top, mid / bottom
            if r1 > 1.15 and r2 > 1.15:
                s[D] += 4
            elif r1 > 1.10 and r2 > 1.10:
                s[D] += 3
            elif r1 > 1.05 and r2 > 1.05:
                s[D] += 1

        if abs(top - bottom) < top * 0.10:
            s[SQ] += 2

        if bottom * 1.2 < top < bottom * 1.4:
            s[H] += 2
        elif top >= bottom * 1.4:
            s[H] += 3
            s[O] -= 1

        if abs(jtf - 1.0) < 0.08 and 0.67 < whr < 0.75:
            s[O] += 1

        cf = m.cheek_fullness
        if cf > 0.45:
            s[R] += 4
            s[O] -= 2
            self._trace("Very high cheek fullness %.3f", cf)
        elif 0.4 < cf <= 0.45:
            s[R] += 2
            s[O] -= 1
        elif 0.32 < cf <= 0.37:
            s[O] += 1
        elif cf < 0.32:
            s[O] += 1
            s[L] += 1

        jr = m.jaw_roundness
        if jr < 115:
            s[O] += 2
            s[R] -= 2
            s[H] += 1
            self._trace("Very low jaw roundness %.1f (pointed chin)", jr)
        elif jr < 125:
            s[O] += 1
            s[R] -= 1
        elif jr > 145:
            s[R] += 4
            s[O] -= 2
            s[H] -= 1
            self._trace("Very high jaw roundness %.1f", jr)
        elif 135 < jr <= 145:
            s[R] += 2
            s[O] -= 1

        return s

    def _definitive_shape(self, m: Measurements) -> TieResult:
        ftj, tap = m.forehead_to_jaw_ratio, m.face_tapering
        if ((ftj >= DEFINITIVE_HEART_FOREHEAD_JAW_RATIO and tap >= 0.3) or
                (tap >= DEFINITIVE_HEART_TAPERING and ftj >= 1.25)):
            return FaceShape.HEART, f"forehead-to-jaw ratio {ftj:.3f}, tapering {tap:.3f}"
        if ((m.face_circularity > 0.95 and m.roundness_coefficient > 0.85) or
                (m.width_to_height_ratio > 0.95 and m.cheek_fullness > 0.45)):
            return FaceShape.ROUND, (f"circularity {m.face_circularity:.3f}, "
                                     f"roundness {m.roundness_coefficient:.3f}, "
                                     f"width-to-height {m.width_to_height_ratio:.3f}")
        return None

    def _apply_chin_ratio(self, m: Measurements, s: Dict[FaceShape, int]) -> None:
        cr = m.chin_ratio
        if cr >= OVAL_CHIN_RATIO:
            s[FaceShape.OVAL] += 15
            self._trace("High chin ratio %.3f >= %.2f strongly suggests oval face", cr, OVAL_CHIN_RATIO)
        elif cr < 0.10:
            s[FaceShape.ROUND] += 5
            s[FaceShape.OVAL] -= 3
            self._trace("Very short chin (ratio %.3f) favours round face", cr)
        elif 0.10 <= cr < 0.12:
            s[FaceShape.ROUND] += 3
            s[FaceShape.OVAL] -= 1
        elif 0.12 <= cr < 0.15:
            s[FaceShape.OVAL] += 1
        elif 0.15 <= cr < 0.17:
            s[FaceShape.OVAL] += 2

    # ---------------- Winner ----------------
    def select_shape(self, scores: Dict[FaceShape, int], m: Measurements) -> Tuple[FaceShape, str]:
        """Pick the winning shape and the reason for it."""
        max_score = 0
        detected = FaceShape.OVAL
        for shape in FaceShape:
            if scores[shape] > max_score:
                max_score = scores[shape]
                detected = shape
        decided_by = "highest score"

        ranked = sorted(FaceShape, key=lambda sh: scores[sh], reverse=True)
        top, second = ranked[0], ranked[1]
        if scores[second] > 0 and scores[top] - scores[second] <= TIE_MARGIN:
            self._trace("Top two shapes are close: %s (%d) and %s (%d)",
                        top.value, scores[top], second.value, scores[second])
            resolver = TIE_BREAKERS.get(frozenset({top, second}))
            decision = resolver(m) if resolver else None
            if decision is not None:
                detected, reason = decision
                decided_by = f"tie-break {top.value}/{second.value}: {reason}"
                self._trace("Final decision: %s based on %s", detected.value, reason)

        if max_score == 0:
            self._trace("No clear face shape detected, defaulting to round")
            return FaceShape.ROUND, "no positive score, default round"
        return detected, decided_by


_default = FaceShapeClassifier()


def classify(landmarks: LandmarkSet) -> Optional[FaceShape]:
    return _default.classify(landmarks)


def analyze(landmarks: LandmarkSet) -> Optional[FaceShapeAnalysis]:
    return _default.analyze(landmarks)
