# face_attendance/core/settings.py
"""
Configuration cho Face Attendance.
Default trong dataclass, override bằng config/config.json.
"""
import os
import json
import logging
import platform
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


# === PLATFORM DETECTION ===
IS_WINDOWS = platform.system() == "Windows"
HAS_DISPLAY = IS_WINDOWS or os.environ.get("DISPLAY", "") != ""

# === PATHS ===
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
CONFIG_PATH = os.environ.get(
    "FACE_ATTENDANCE_CONFIG",
    os.path.join(BASE_DIR, 'config', 'config.json')
)


def _load_json_config(path: str) -> dict:
    """Load config từ JSON file, trả về {} nếu lỗi."""
    if not os.path.exists(path):
        return {}
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Bỏ qua config không hợp lệ {path}: {e}")
        return {}
    return data if isinstance(data, dict) else {}


@dataclass
class Settings:
    """Configuration - chỉ giữ settings cần thiết."""

    # === PLATFORM (read-only) ===
    IS_WINDOWS: bool = field(default_factory=lambda: IS_WINDOWS)
    HAS_DISPLAY: bool = field(default_factory=lambda: HAS_DISPLAY)
    BASE_DIR: str = field(default_factory=lambda: BASE_DIR)

    # === RECOGNITION ===
    RECOGNITION_THRESHOLD: float = 0.85   # Cosine similarity, phải lớn hơn (strict)
    DETECTION_WINDOW_SECONDS: float = 2.0  # Nhận diện cũ hơn 2s không được điểm danh

    # === DETECTOR (Haar cascade) ===
    DETECTOR_SCALE_FACTOR: float = 1.1
    DETECTOR_MIN_NEIGHBORS: int = 5
    MIN_FACE_SIZE: int = 60

    # === STORAGE ===
    DB_PATH: str = "attendance.db"
    CACHE_PATH: str = "local_cache.json"
    IMAGES_DIR: str = "student-images"
    GALLERY_REFRESH_SECONDS: float = 5.0

    # === WEB SERVER ===
    ENABLE_WEB_SERVER: bool = True
    WEB_PORT: int = 5000

    # === DISPLAY ===
    FORCE_GUI_MODE: bool = False
    HEADLESS_MODE: bool = False
    OVERLAY_ENABLED: bool = True

    # === CAMERA ===
    CAMERA_WIDTH: int = 640
    CAMERA_HEIGHT: int = 480

    def __post_init__(self):
        self._load_from_json()
        self._compute_defaults()

    def _load_from_json(self):
        """Load settings từ config.json nếu có."""
        config = _load_json_config(CONFIG_PATH)
        for key, value in config.items():
            if hasattr(self, key) and value is not None:
                setattr(self, key, value)

    def _compute_defaults(self):
        """Headless khi không có màn hình và không ép GUI."""
        self.HEADLESS_MODE = not self.IS_WINDOWS and not self.FORCE_GUI_MODE and not self.HAS_DISPLAY
        self.OVERLAY_ENABLED = not self.HEADLESS_MODE


# === SINGLETON ===
settings = Settings()
