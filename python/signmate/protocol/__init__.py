"""Protocol Module - 上游负载模式"""

from .schema import (
    TranscriptionSegment,
    ASLSign,
    HandShape,
    SignLocation,
    SignMovement,
    NonManualMarker,
    Vector3D,
)

__all__ = [
    "TranscriptionSegment",
    "ASLSign",
    "HandShape",
    "SignLocation",
    "SignMovement",
    "NonManualMarker",
    "Vector3D",
]
