import os
from typing import Dict, List, Optional, Union

from .face_shape import FaceShape
from .schemas import HairstyleSuggestion

HAIRSTYLE_IMAGE_BASE = os.getenv("HAIRSTYLE_IMAGE_BASE", "/images/hairstyles")

# Hairstyle ids 1..9 refer to the picker catalogue, best fit first.
HAIRSTYLE_CATALOG: Dict[FaceShape, tuple] = {
    FaceShape.OVAL: (1, 3, 5, 7),    # oval faces can pull off most styles
    FaceShape.ROUND: (2, 6, 9),      # lengthen the face
    FaceShape.SQUARE: (1, 5, 8),     # soften a strong jawline
    FaceShape.HEART: (3, 7, 9),      # balance a wider forehead
    FaceShape.LONG: (2, 4, 8),       # add width
    FaceShape.DIAMOND: (1, 3, 6),    # soften angular features
}

FACE_SHAPE_INFO: Dict[FaceShape, Dict] = {
    FaceShape.OVAL: {
        "description": "The oval face is considered the ideal shape because of its balanced proportions.",
        "characteristics": ["Forehead slightly wider than the chin",
                            "Face length is about 1.5 times the width"],
    },
    FaceShape.ROUND: {
        "description": "Round faces have soft angles and are approximately as wide as they are long.",
        "characteristics": ["Full cheeks", "Rounded jawline", "Similar width and height"],
    },
    FaceShape.SQUARE: {
        "description": "Square faces have strong, angular jawlines and typically equal face width and length.",
        "characteristics": ["Strong jawline", "Minimal curve from forehead to jaw",
                            "Forehead, cheekbones and jawline are similar widths"],
    },
    FaceShape.HEART: {
        "description": "Heart-shaped faces have a wider forehead and cheekbones with a narrow jawline and chin.",
        "characteristics": ["Wider forehead", "Narrow chin", "High cheekbones"],
    },
    FaceShape.LONG: {
        "description": "Long faces are longer than they are wide with little width variation throughout.",
        "characteristics": ["Face length greater than width", "Straight cheek line", "Narrow chin"],
    },
    FaceShape.DIAMOND: {
        "description": "Diamond faces have narrow foreheads and jawlines with wider cheekbones.",
        "characteristics": ["Narrow forehead", "Pointed chin", "High, wide cheekbones"],
    },
}


def parse_shape(face_shape: Union[FaceShape, str, None]) -> Optional[FaceShape]:
    if isinstance(face_shape, FaceShape):
        return face_shape
    if not isinstance(face_shape, str):
        return None
    try:
        return FaceShape(face_shape.lower().strip())
    except ValueError:
        return None


def recommend(face_shape: Union[FaceShape, str, None]) -> List[int]:
    """Ordered hairstyle ids for a face shape; [] for anything unknown."""
    shape = parse_shape(face_shape)
    if shape is None:
        return []
    return list(HAIRSTYLE_CATALOG.get(shape, ()))


def describe(face_shape: Union[FaceShape, str, None]) -> Optional[Dict]:
    shape = parse_shape(face_shape)
    if shape is None:
        return None
    info = FACE_SHAPE_INFO[shape]
    return {"description": info["description"], "characteristics": list(info["characteristics"])}


def to_image(hairstyle_id: int) -> str:
    return HAIRSTYLE_IMAGE_BASE.rstrip("/") + f"/{hairstyle_id}.jpeg"


def suggest_for_face(face_shape: Union[FaceShape, str, None]) -> List[HairstyleSuggestion]:
    return [HairstyleSuggestion(id=i, image_url=to_image(i)) for i in recommend(face_shape)]
