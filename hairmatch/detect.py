# hairmatch/detect.py
"""Landmark providers: turn an image into a 68-point LandmarkSet."""

from __future__ import annotations

import abc
import asyncio
import logging
import threading
from typing import List, Optional

import cv2
import numpy as np

from .exceptions import ModelLoadError, ModelNotLoadedError
from .landmarks import LandmarkSet, landmark_set_from_points

# MediaPipe
try:
    import mediapipe as mp
except Exception:
    mp = None

logger = logging.getLogger(__name__)

# MediaPipe FaceMesh (468) index for each point of the 68-point layout.
# Jaw pairs are mirror images on the face oval; 8 is the chin.
MEDIAPIPE_TO_68: List[int] = [
    # jaw 0-16
    127, 234, 93, 132, 58, 172, 150, 176, 152, 400, 379, 397, 288, 361, 323, 454, 356,
    # eyebrows 17-26
    70, 63, 105, 66, 107, 336, 296, 334, 293, 300,
    # nose 27-35
    168, 197, 5, 4, 75, 97, 2, 326, 305,
    # left eye 36-41
    33, 160, 158, 133, 153, 144,
    # right eye 42-47
    362, 385, 387, 263, 373, 380,
    # outer lips 48-59
    61, 39, 37, 0, 267, 269, 291, 405, 314, 17, 84, 181,
    # inner lips 60-67
    78, 82, 13, 312, 308, 317, 14, 87,
]


def decode_image_bytes(b: bytes) -> Optional[np.ndarray]:
    if not b:
        return None
    arr = np.frombuffer(b, dtype=np.uint8)
    return cv2.imdecode(arr, cv2.IMREAD_COLOR)


def mesh_to_landmark_set(mesh_landmarks, width: int, height: int) -> LandmarkSet:
    """Convert normalised FaceMesh landmarks to a pixel-space 68-point set."""
    points = [(mesh_landmarks[i].x * width, mesh_landmarks[i].y * height)
              for i in MEDIAPIPE_TO_68]
    return landmark_set_from_points(points)


class LandmarkProvider(abc.ABC):
    """
    Detector capability with two states, unloaded and loaded.

    load() moves it to loaded; detect() requires the loaded state and
    returns the first face found, or None.
    """

    @property
    @abc.abstractmethod
    def is_loaded(self) -> bool:
        ...

    @abc.abstractmethod
    async def load(self) -> None:
        ...

    @abc.abstractmethod
    async def detect(self, image: np.ndarray) -> Optional[LandmarkSet]:
        ...

    def close(self) -> None:
        pass


class MediaPipeLandmarkProvider(LandmarkProvider):
    def __init__(self, min_detection_confidence: float = 0.5, max_num_faces: int = 1):
        self.min_detection_confidence = min_detection_confidence
        self.max_num_faces = max_num_faces
        self._face_mesh = None
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._face_mesh is not None

    def _build_face_mesh(self):
        if mp is None:
            raise ModelLoadError("mediapipe is not available.")
        try:
            return mp.solutions.face_mesh.FaceMesh(
                static_image_mode=True,
                max_num_faces=self.max_num_faces,
                refine_landmarks=False,
                min_detection_confidence=self.min_detection_confidence,
            )
        except Exception as e:
            raise ModelLoadError(f"Failed to initialize MediaPipe FaceMesh: {e}") from e

    async def load(self) -> None:
        if self.is_loaded:
            return
        logger.info("Loading MediaPipe FaceMesh (max_faces=%d)...", self.max_num_faces)
        face_mesh = await asyncio.to_thread(self._build_face_mesh)
        with self._lock:
            if self._face_mesh is None:
                self._face_mesh = face_mesh
            else:
                face_mesh.close()
        logger.info("MediaPipe FaceMesh loaded")

    def _process(self, image_bgr: np.ndarray) -> Optional[LandmarkSet]:
        img_rgb = cv2.cvtColor(image_bgr, cv2.COLOR_BGR2RGB)
        with self._lock:
            res = self._face_mesh.process(img_rgb)
        if not res.multi_face_landmarks:
            logger.info("No faces with landmarks detected in the image")
            return None
        if len(res.multi_face_landmarks) > 1:
            logger.info("%d faces detected, using the first one", len(res.multi_face_landmarks))
        h, w = image_bgr.shape[:2]
        return mesh_to_landmark_set(res.multi_face_landmarks[0].landmark, w, h)

    async def detect(self, image: np.ndarray) -> Optional[LandmarkSet]:
        if not self.is_loaded:
            raise ModelNotLoadedError("Call load() before detect()")
        return await asyncio.to_thread(self._process, image)

    def close(self) -> None:
        with self._lock:
            if self._face_mesh is not None:
                self._face_mesh.close()
                self._face_mesh = None


async def load_with_retry(provider: LandmarkProvider, attempts: int = 3) -> None:
    """Load the provider, retrying up to `attempts` times."""
    if provider.is_loaded:
        return
    last_error: Optional[Exception] = None
    for attempt in range(1, attempts + 1):
        try:
            await provider.load()
            return
        except ModelLoadError as e:
            last_error = e
            logger.warning("Model load attempt %d/%d failed: %s", attempt, attempts, e)
    logger.error("Failed to load face detection models after %d attempts", attempts)
    raise ModelLoadError(f"Failed to load face detection models after {attempts} attempts") from last_error
