# face_attendance/data/local_cache.py
"""
Local cache - bản sao JSON của identity và attendance.

Mọi thao tác ghi database đều được ghi kèm vào đây. Khi database không
truy cập được, service đọc từ cache này (degraded mode).

File format:
    {"registeredFaces": [...], "todayAttendance": [...]}
"""
import os
import json
import logging
import tempfile
import threading
from typing import Any, Dict, List

from ..core.errors import StoreUnavailable

logger = logging.getLogger(__name__)

CACHE_PATH = "local_cache.json"

FACES_KEY = 'registeredFaces'
ATTENDANCE_KEY = 'todayAttendance'


class LocalCache:

    def __init__(self, path: str = CACHE_PATH):
        self.path = path
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, List[Dict[str, Any]]]:
        data = {FACES_KEY: [], ATTENDANCE_KEY: []}
        if not os.path.exists(self.path):
            return data
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                loaded = json.load(f)
        except ValueError:
            logger.warning(f"[Cache] File hỏng, bắt đầu lại: {self.path}")
            return data
        except OSError as e:
            raise StoreUnavailable(f"cannot read {self.path}: {e}") from e

        if isinstance(loaded, dict):
            for key in (FACES_KEY, ATTENDANCE_KEY):
                if isinstance(loaded.get(key), list):
                    data[key] = loaded[key]
        return data

    def _write(self, data):
        """Ghi atomic: file tạm + os.replace."""
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix='.tmp')
        except OSError as e:
            raise StoreUnavailable(f"cannot write {self.path}: {e}") from e

        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StoreUnavailable(f"cannot write {self.path}: {e}") from e
        finally:
            # Còn file tạm nghĩa là ghi hoặc replace thất bại
            if os.path.exists(tmp_path):
                os.remove(tmp_path)

    # === IDENTITIES ===
    def identities(self) -> List[Dict[str, Any]]:
        with self._lock:
            return self._read()[FACES_KEY]

    def add_identity(self, payload: Dict[str, Any]):
        with self._lock:
            data = self._read()
            data[FACES_KEY].append(payload)
            self._write(data)

    def remove_identity(self, record_id) -> bool:
        with self._lock:
            data = self._read()
            kept = [face for face in data[FACES_KEY] if face.get('id') != record_id]
            if len(kept) == len(data[FACES_KEY]):
                return False
            data[FACES_KEY] = kept
            self._write(data)
            return True

    # === ATTENDANCE ===
    def attendance(self) -> List[Dict[str, Any]]:
        with self._lock:
            return self._read()[ATTENDANCE_KEY]

    def append_attendance(self, payload: Dict[str, Any]):
        with self._lock:
            data = self._read()
            data[ATTENDANCE_KEY].append(payload)
            self._write(data)

    def clear_attendance(self):
        with self._lock:
            data = self._read()
            data[ATTENDANCE_KEY] = []
            self._write(data)
