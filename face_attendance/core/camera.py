# face_attendance/core/camera.py
"""
Camera Manager - nguồn frame cho DetectionLoop.

read() trả về None khi camera thực sự hỏng (nhiều lần đọc lỗi liên tiếp),
DetectionLoop coi None là tín hiệu dừng.

Usage:
    with CameraManager(device_id=0) as camera:
        frame = camera.read()
"""
import cv2
import time
import logging
from typing import Optional, Tuple
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class CameraConfig:
    width: int = 640
    height: int = 480
    open_attempts: int = 3
    retry_delay: float = 2.0
    discard_frames: int = 5     # Frame đầu thường tối / chưa cân bằng trắng
    max_read_failures: int = 10


class CameraManager:
    """Bọc cv2.VideoCapture: mở có retry, đọc frame BGR."""

    def __init__(self, device_id: int = 0, config: Optional[CameraConfig] = None):
        self.device_id = device_id
        self.config = config or CameraConfig()
        self._cap: Optional[cv2.VideoCapture] = None
        self._read_failures = 0

    def open(self) -> bool:
        """Returns True nếu mở được camera trong số lần thử cho phép."""
        cfg = self.config

        for attempt in range(1, cfg.open_attempts + 1):
            cap = cv2.VideoCapture(self.device_id)
            if cap.isOpened():
                cap.set(cv2.CAP_PROP_FRAME_WIDTH, cfg.width)
                cap.set(cv2.CAP_PROP_FRAME_HEIGHT, cfg.height)
                for _ in range(cfg.discard_frames):
                    cap.grab()

                self._cap = cap
                self._read_failures = 0
                w, h = self.get_resolution()
                logger.info(f"📹 Camera {self.device_id} opened: {w}x{h}")
                return True

            cap.release()
            if attempt < cfg.open_attempts:
                logger.warning(f"⚠️ Camera {self.device_id} chưa sẵn sàng ({attempt}/{cfg.open_attempts})")
                time.sleep(cfg.retry_delay)

        logger.error(f"❌ Không mở được camera {self.device_id}")
        return False

    def read(self):
        """
        Đọc một frame.

        Returns:
            Frame BGR, hoặc None nếu chưa mở / đã lỗi quá max_read_failures lần liên tiếp
        """
        if self._cap is None:
            return None

        while True:
            ok, frame = self._cap.read()
            if ok:
                self._read_failures = 0
                return frame

            self._read_failures += 1
            if self._read_failures >= self.config.max_read_failures:
                logger.warning(f"Camera lỗi {self._read_failures} lần liên tiếp")
                return None

    def release(self):
        if self._cap is None:
            return
        self._cap.release()
        self._cap = None
        logger.info("📹 Camera released")

    def get_resolution(self) -> Tuple[int, int]:
        if self._cap is None:
            return (0, 0)
        return (
            int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        )

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False
