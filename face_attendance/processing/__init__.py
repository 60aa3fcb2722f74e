# face_attendance/processing/__init__.py
"""
Processing modules - Frame & Attendance Processing.

- attendance: AttendanceSession (debounce window, once-per-day guard)
- service: AttendanceService (gallery + storage + session)
- loop: DetectionLoop (per-frame pipeline, cancellation)
- display: UI/Overlay handler
"""

from .attendance import (
    AttendanceRecord,
    AttendanceSession,
    CommitOutcome,
    CommitResult,
    Observation,
    calendar_day,
)
from .display import DisplayHandler, FaceStatus
from .loop import DetectionLoop, FrameReport
from .service import AttendanceService

__all__ = [
    'AttendanceRecord',
    'AttendanceSession',
    'CommitOutcome',
    'CommitResult',
    'Observation',
    'calendar_day',
    'DisplayHandler',
    'FaceStatus',
    'DetectionLoop',
    'FrameReport',
    'AttendanceService',
]
