# face_attendance/detect/__init__.py
"""
Face detection & detection gate.

- detect: FaceBox, HaarFaceDetector
- gate: DetectionGate (exactly-one-face policy)
"""

from .detect import FaceBox, HaarFaceDetector, create_detector
from .gate import DetectionGate, DetectionState

__all__ = [
    'FaceBox',
    'HaarFaceDetector',
    'create_detector',
    'DetectionGate',
    'DetectionState',
]
