# face_attendance/core/__init__.py
"""
Core modules - Infrastructure & Configuration.

- settings: Unified configuration
- camera: Camera management
- errors: Exception taxonomy
"""

from .settings import settings, Settings
from .camera import CameraManager, CameraConfig
from .errors import AttendanceError, InvalidRegion, DuplicateIdentity, StoreUnavailable

__all__ = [
    'settings',
    'Settings',
    'CameraManager',
    'CameraConfig',
    'AttendanceError',
    'InvalidRegion',
    'DuplicateIdentity',
    'StoreUnavailable',
]
