"""
Shared fixtures: landmark frames for a person standing square to the camera.
"""

from typing import Dict, Optional, Tuple

import pytest

from posture_service.models.landmarks import LANDMARK_COUNT, JointType, Landmark, LandmarkFrame


# Normalized (x, y) of an upright, level, straight-legged pose with arms down
STANDING_POSE: Dict[JointType, Tuple[float, float]] = {
    JointType.NOSE: (0.5, 0.15),
    JointType.LEFT_EAR: (0.53, 0.15),
    JointType.RIGHT_EAR: (0.47, 0.15),
    JointType.LEFT_SHOULDER: (0.6, 0.3),
    JointType.RIGHT_SHOULDER: (0.4, 0.3),
    JointType.LEFT_ELBOW: (0.62, 0.45),
    JointType.RIGHT_ELBOW: (0.38, 0.45),
    JointType.LEFT_WRIST: (0.63, 0.6),
    JointType.RIGHT_WRIST: (0.37, 0.6),
    JointType.LEFT_HIP: (0.57, 0.6),
    JointType.RIGHT_HIP: (0.43, 0.6),
    JointType.LEFT_KNEE: (0.57, 0.8),
    JointType.RIGHT_KNEE: (0.43, 0.8),
    JointType.LEFT_ANKLE: (0.57, 1.0),
    JointType.RIGHT_ANKLE: (0.43, 1.0),
}


def build_frame(
    overrides: Optional[Dict[JointType, Tuple[float, float]]] = None,
    hidden: Tuple[JointType, ...] = (),
    timestamp_ms: float = 0.0,
    visibility: float = 1.0,
) -> LandmarkFrame:
    """Standing pose with some joints moved and some hidden."""
    points = dict(STANDING_POSE)
    points.update(overrides or {})
    
    landmarks = []
    for idx in range(LANDMARK_COUNT):
        joint = JointType(idx)
        x, y = points.get(joint, (0.5, 0.5))
        vis = 0.1 if joint in hidden else visibility
        landmarks.append(Landmark(x=x, y=y, z=0.0, visibility=vis))
    return LandmarkFrame(landmarks, timestamp_ms)


@pytest.fixture
def frame_builder():
    return build_frame


@pytest.fixture
def standing_frame() -> LandmarkFrame:
    return build_frame()
