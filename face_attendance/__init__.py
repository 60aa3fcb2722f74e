"""
Face Attendance - nhận diện khuôn mặt, một lần điểm danh mỗi người mỗi ngày.

Structure:
    face_attendance/
    ├── core/                     # Infrastructure
    │   ├── settings.py           # Configuration
    │   ├── camera.py             # Camera management
    │   └── errors.py             # Exceptions
    ├── data/                     # Storage
    │   ├── database.py           # SQLite (students + attendance)
    │   └── local_cache.py        # JSON fallback cache
    ├── detect/                   # Face detection
    │   ├── detect.py             # FaceBox, Haar cascade detector
    │   └── gate.py               # Exactly-one-face gate
    ├── recognition/              # Recognition core
    │   ├── features.py           # 128-dim pixel-sampling embedding
    │   ├── gallery.py            # Enrolled identities
    │   └── matcher.py            # Cosine similarity matcher
    ├── processing/               # Attendance logic
    │   ├── attendance.py         # AttendanceSession (window, once per day)
    │   ├── service.py            # Gallery + storage + session
    │   ├── loop.py               # Per-frame detection loop
    │   └── display.py            # Overlay
    ├── web/                      # Flask dashboard + API
    └── main.py                   # Entry point

Usage:
    from face_attendance import FeatureExtractor, GalleryStore, match, AttendanceSession
"""

from .recognition import FeatureExtractor, GalleryStore, Identity, match, NO_MATCH
from .detect import DetectionGate, DetectionState, FaceBox
from .processing import AttendanceSession, CommitOutcome, AttendanceRecord

__all__ = [
    'FeatureExtractor',
    'GalleryStore',
    'Identity',
    'match',
    'NO_MATCH',
    'DetectionGate',
    'DetectionState',
    'FaceBox',
    'AttendanceSession',
    'CommitOutcome',
    'AttendanceRecord',
]
