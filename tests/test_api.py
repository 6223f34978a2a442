import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient

from hairmatch.detect import LandmarkProvider
from hairmatch.exceptions import ModelLoadError
from hairmatch import main
from hairmatch.main import app, get_landmark_provider


class FakeProvider(LandmarkProvider):
    def __init__(self, landmarks=None, fail_load=False):
        self.landmarks = landmarks
        self.fail_load = fail_load
        self._loaded = False

    @property
    def is_loaded(self):
        return self._loaded

    async def load(self):
        if self.fail_load:
            raise ModelLoadError("no model")
        self._loaded = True

    async def detect(self, image):
        return self.landmarks


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def png_bytes():
    ok, buf = cv2.imencode(".png", np.full((32, 32, 3), 200, dtype=np.uint8))
    assert ok
    return buf.tobytes()


def _upload(client, data):
    return client.post("/detect/face-shape", files={"file": ("face.png", data, "image/png")})


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True


def test_classify_round(client, round_landmarks):
    r = client.post("/classify", json=round_landmarks.to_dict())
    assert r.status_code == 200
    body = r.json()
    assert body["face_shape"] == "round"
    assert body["recommended_hairstyles"] == [2, 6, 9]
    assert body["suggestions"][0]["image_url"].endswith("/2.jpeg")
    assert body["message"] == "Your face shape: round"


def test_classify_empty_payload_is_no_result(client):
    r = client.post("/classify", json={})
    assert r.status_code == 200
    body = r.json()
    assert body["face_shape"] is None
    assert body["recommended_hairstyles"] == []
    assert body["message"] == "Could not determine face shape."


def test_recommendations(client):
    assert client.get("/recommendations/heart").json()["hairstyles"] == [3, 7, 9]
    assert client.get("/recommendations/Oval").json()["hairstyles"] == [1, 3, 5, 7]
    assert client.get("/recommendations/triangle").json()["hairstyles"] == []


def test_detect_face_shape(client, png_bytes, round_landmarks):
    app.dependency_overrides[get_landmark_provider] = lambda: FakeProvider(round_landmarks)
    r = _upload(client, png_bytes)
    assert r.status_code == 200
    assert r.json()["face_shape"] == "round"


def test_detect_no_face(client, png_bytes):
    app.dependency_overrides[get_landmark_provider] = lambda: FakeProvider(None)
    r = _upload(client, png_bytes)
    assert r.status_code == 422
    assert "No face detected" in r.json()["detail"]


def test_detect_undecodable_image(client):
    app.dependency_overrides[get_landmark_provider] = lambda: FakeProvider(None)
    r = _upload(client, b"garbage bytes that are not an image")
    assert r.status_code == 400


def test_detect_model_unavailable(client, png_bytes):
    app.dependency_overrides[get_landmark_provider] = lambda: FakeProvider(fail_load=True)
    r = _upload(client, png_bytes)
    assert r.status_code == 503


def test_one_provider_per_app_closed_on_shutdown(monkeypatch, png_bytes):
    created = []

    class RecordingProvider(FakeProvider):
        def __init__(self, **kwargs):
            super().__init__()
            self.kwargs = kwargs
            self.closed = False
            created.append(self)

        def close(self):
            self.closed = True

    monkeypatch.setattr(main, "MediaPipeLandmarkProvider", RecordingProvider)
    with TestClient(app) as c:
        assert _upload(c, png_bytes).status_code == 422
        assert _upload(c, png_bytes).status_code == 422
        assert app.state.landmark_provider is created[0]
        assert not created[0].closed

    assert len(created) == 1
    assert created[0].closed
    assert created[0].kwargs["max_num_faces"] == main.settings.max_num_faces
    assert app.state.landmark_provider is None


def test_detect_without_running_app_is_unavailable(png_bytes):
    r = TestClient(app).post("/detect/face-shape", files={"file": ("face.png", png_bytes, "image/png")})
    assert r.status_code == 503
