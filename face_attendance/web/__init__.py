# face_attendance/web/__init__.py
"""
Web module - Flask server và management API.
"""
from .server import create_app, run_server
from .management import management_bp, init_management

__all__ = [
    'create_app',
    'run_server',
    'management_bp',
    'init_management',
]
