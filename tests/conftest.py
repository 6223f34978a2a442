import pytest

from hairmatch.face_shape import Measurements
from hairmatch.landmarks import make_landmark_set

NOSE = [(50, 40), (50, 50), (50, 60), (45, 65), (55, 65)]


def _heart(chin_y=120, mouth_bottom=95):
    # eye span 60 -> forehead 96, jaw corners 64 apart: forehead/jaw 1.5, tapering 1/3
    jaw = [(0, 0), (2, 20), (6, 40), (18, 60), (24, 80), (32, 95), (40, 108), (45, 116),
           (50, chin_y),
           (55, 116), (60, 108), (68, 95), (76, 80), (82, 60), (94, 40), (98, 20), (100, 0)]
    left_eye = [(20, 35), (25, 30), (35, 30), (40, 35), (35, 38), (25, 38)]
    right_eye = [(60, 35), (65, 30), (75, 30), (80, 35), (75, 38), (65, 38)]
    mouth = [(38, 85), (50, 82), (62, 85), (50, mouth_bottom)]
    return make_landmark_set(jaw, left_eye, right_eye, mouth, NOSE)


def _round():
    # 100 wide, 100 high (eyes at 30, forehead offset 20, chin at 110)
    jaw = [(0, 10), (1, 30), (3, 50), (10, 70), (16, 84), (24, 95), (32, 103), (41, 108),
           (50, 110),
           (59, 108), (68, 103), (76, 95), (84, 84), (90, 70), (97, 50), (99, 30), (100, 10)]
    left_eye = [(25, 35), (30, 30), (40, 30), (45, 35), (40, 38), (30, 38)]
    right_eye = [(55, 35), (60, 30), (70, 30), (75, 35), (70, 38), (60, 38)]
    mouth = [(38, 85), (50, 82), (62, 85), (50, 92)]
    return make_landmark_set(jaw, left_eye, right_eye, mouth, NOSE)


def _elongated(mouth_bottom=120):
    # 100 wide, 170 high; the chin ratio (via mouth_bottom) decides oval/long/round
    jaw = [(0, 20), (2, 40), (5, 70), (10, 100), (15, 120), (22, 135), (30, 145), (40, 152),
           (50, 155),
           (60, 152), (70, 145), (78, 135), (85, 120), (90, 100), (95, 70), (98, 40), (100, 20)]
    left_eye = [(25, 10), (30, 5), (37, 5), (42, 10), (37, 12), (30, 12)]
    right_eye = [(58, 10), (63, 5), (70, 5), (75, 10), (70, 12), (63, 12)]
    mouth = [(38, 112), (50, 108), (62, 112), (50, mouth_bottom)]
    return make_landmark_set(jaw, left_eye, right_eye, mouth, NOSE)


@pytest.fixture
def heart_landmarks():
    return _heart


@pytest.fixture
def round_landmarks():
    return _round()


@pytest.fixture
def elongated_landmarks():
    return _elongated


NEUTRAL = dict(
    face_width_at_cheeks=100.0,
    face_center_x=50.0,
    cheek_fullness=0.38,
    face_width=100.0,
    forehead_top=0.0,
    face_height=131.6,
    face_circularity=0.76,
    roundness_coefficient=0.5,
    cheek_curvature=0.7,
    chin_length=26.0,
    chin_ratio=0.2,
    jaw_width=100.0,
    eye_width=60.0,
    forehead_width=100.0,
    upper_face_width=100.0,
    jaw_angle=50.0,
    jaw_roundness=130.0,
    width_to_height_ratio=0.76,
    jaw_to_forehead_ratio=1.0,
    forehead_to_jaw_ratio=1.0,
    upper_to_lower_face_width_ratio=1.0,
    top_third_width=100.0,
    mid_third_width=100.0,
    bottom_third_width=100.0,
    chin_pointedness=50.0,
    face_tapering=0.0,
)


@pytest.fixture
def make_measurements():
    def _make(**overrides):
        values = dict(NEUTRAL)
        values.update(overrides)
        return Measurements(**values)
    return _make
