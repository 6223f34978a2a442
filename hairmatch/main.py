# hairmatch/main.py

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware

import uvicorn

from hairmatch import __version__
from hairmatch.detect import (
    LandmarkProvider,
    MediaPipeLandmarkProvider,
    decode_image_bytes,
    load_with_retry,
)
from hairmatch.exceptions import ModelLoadError, ModelNotLoadedError, NoFaceDetectedError
from hairmatch.face_shape import FaceShapeClassifier
from hairmatch.landmarks import LandmarkSet
from hairmatch.schemas import FaceShapeResponse, LandmarkSetIn, RecommendationResponse
from hairmatch.settings import ClassifierConfig, ServiceSettings
from hairmatch import suggester

logger = logging.getLogger("hairmatch")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger("hairmatch")
    if root.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


settings = ServiceSettings.from_env()
configure_logging(settings.log_level)
classifier = FaceShapeClassifier(ClassifierConfig.from_env())


@asynccontextmanager
async def lifespan(app: FastAPI):
    # one provider per app; the model itself loads on first detection
    provider = MediaPipeLandmarkProvider(
        min_detection_confidence=settings.min_detection_confidence,
        max_num_faces=settings.max_num_faces,
    )
    app.state.landmark_provider = provider
    try:
        yield
    finally:
        provider.close()
        app.state.landmark_provider = None
        logger.info("Landmark provider closed")


app = FastAPI(title="Hairmatch Face Shape API", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_landmark_provider(request: Request) -> LandmarkProvider:
    provider: Optional[LandmarkProvider] = getattr(request.app.state, "landmark_provider", None)
    if provider is None:
        raise HTTPException(status_code=503, detail="Face detection is not running.")
    return provider


def get_classifier() -> FaceShapeClassifier:
    return classifier


def _build_response(landmarks: LandmarkSet, clf: FaceShapeClassifier) -> FaceShapeResponse:
    analysis = clf.analyze(landmarks)
    if analysis is None:
        return FaceShapeResponse(face_shape=None, message="Could not determine face shape.")

    shape = analysis.face_shape
    info = suggester.describe(shape) or {}
    return FaceShapeResponse(
        face_shape=shape.value,
        message=f"Your face shape: {shape.value}",
        description=info.get("description"),
        characteristics=info.get("characteristics", []),
        recommended_hairstyles=suggester.recommend(shape),
        suggestions=suggester.suggest_for_face(shape),
        debug=analysis.to_dict() if settings.debug_payload else None,
    )


async def _detect_landmarks(provider: LandmarkProvider, img) -> LandmarkSet:
    await load_with_retry(provider, settings.model_load_attempts)
    landmarks = await provider.detect(img)
    if landmarks is None:
        raise NoFaceDetectedError("No face detected")
    return landmarks


@app.get("/health")
def health() -> Dict[str, Any]:
    return {"ok": True, "version": app.version}


@app.post("/detect/face-shape", response_model=FaceShapeResponse)
async def detect_face_shape(
    file: UploadFile = File(..., description="selfie"),
    provider: LandmarkProvider = Depends(get_landmark_provider),
    clf: FaceShapeClassifier = Depends(get_classifier),
) -> FaceShapeResponse:
    """
    Upload -> landmark detection -> face shape -> hairstyle recommendations.

    Returns 400 for undecodable images, 422 when no face is found and 503
    when the detector cannot be loaded.
    """
    data = await file.read()
    img = decode_image_bytes(data)
    if img is None:
        raise HTTPException(status_code=400, detail="Could not decode image.")

    try:
        landmarks = await _detect_landmarks(provider, img)
    except NoFaceDetectedError:
        raise HTTPException(status_code=422,
                            detail="No face detected in the image. Please try a clearer photo.")
    except (ModelLoadError, ModelNotLoadedError) as e:
        logger.error("Face detection unavailable: %s", e)
        raise HTTPException(status_code=503,
                            detail="Face detection models are not available. Please try again later.")

    return _build_response(landmarks, clf)


@app.post("/classify", response_model=FaceShapeResponse)
def classify_landmarks(
    payload: LandmarkSetIn,
    clf: FaceShapeClassifier = Depends(get_classifier),
) -> FaceShapeResponse:
    return _build_response(payload.to_landmark_set(), clf)


@app.get("/recommendations/{face_shape}", response_model=RecommendationResponse)
def recommendations(face_shape: str) -> RecommendationResponse:
    return RecommendationResponse(face_shape=face_shape, hairstyles=suggester.recommend(face_shape))


if __name__ == "__main__":
    uvicorn.run("hairmatch.main:app", host="0.0.0.0", port=8000, reload=False)
