# face_attendance/data/__init__.py
"""
Data layer - persistent store và local fallback cache.
"""
from .database import AttendanceDatabase
from .local_cache import LocalCache

__all__ = [
    'AttendanceDatabase',
    'LocalCache',
]
