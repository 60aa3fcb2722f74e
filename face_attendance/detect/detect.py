# face_attendance/detect/detect.py
"""
Face Detection - OpenCV Haar cascade.

Detector là collaborator bên ngoài lõi nhận diện: mỗi frame trả về một
danh sách FaceBox (có thể rỗng). Bất kỳ detector nào có method
detect_faces(frame) -> List[FaceBox] đều dùng được với DetectionLoop.
"""
import cv2
import logging
import threading
from dataclasses import dataclass
from typing import List, Tuple

logger = logging.getLogger(__name__)

DEFAULT_CASCADE = "haarcascade_frontalface_default.xml"


@dataclass(frozen=True)
class FaceBox:
    """Hình chữ nhật (topLeft, bottomRight) theo tọa độ pixel của frame."""
    top_left: Tuple[float, float]
    bottom_right: Tuple[float, float]

    @property
    def width(self) -> float:
        return self.bottom_right[0] - self.top_left[0]

    @property
    def height(self) -> float:
        return self.bottom_right[1] - self.top_left[1]

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    def as_xywh(self) -> Tuple[int, int, int, int]:
        x, y = self.top_left
        return int(x), int(y), int(self.width), int(self.height)

    @classmethod
    def from_xywh(cls, x, y, w, h) -> "FaceBox":
        return cls((x, y), (x + w, y + h))


class HaarFaceDetector:
    """
    Face detector dùng Haar cascade của OpenCV. Thread-safe.

    Cascade file lấy từ cv2.data.haarcascades (đi kèm opencv-python).
    """

    def __init__(self, cascade_path=None, scale_factor=1.1, min_neighbors=5, min_size=60):
        if cascade_path is None:
            cascade_path = cv2.data.haarcascades + DEFAULT_CASCADE

        self._lock = threading.Lock()
        self.cascade_path = cascade_path
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.min_size = (min_size, min_size)

        self._cascade = cv2.CascadeClassifier(cascade_path)
        if self._cascade.empty():
            raise RuntimeError(f"Không load được cascade: {cascade_path}")

        logger.info(f"[Detector] Cascade: {cascade_path}")

    def detect_faces(self, frame) -> List[FaceBox]:
        """
        Phát hiện khuôn mặt trong frame BGR.

        Returns:
            List FaceBox, sắp xếp theo diện tích giảm dần
        """
        if frame is None or frame.size == 0:
            return []

        if frame.ndim == 3:
            gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        else:
            gray = frame

        with self._lock:
            rects = self._cascade.detectMultiScale(
                gray,
                scaleFactor=self.scale_factor,
                minNeighbors=self.min_neighbors,
                minSize=self.min_size
            )

        boxes = [FaceBox.from_xywh(int(x), int(y), int(w), int(h)) for (x, y, w, h) in rects]
        boxes.sort(key=lambda b: b.area, reverse=True)
        return boxes


def create_detector(settings=None) -> HaarFaceDetector:
    """Factory tạo detector theo settings."""
    if settings is None:
        from ..core.settings import settings

    return HaarFaceDetector(
        scale_factor=settings.DETECTOR_SCALE_FACTOR,
        min_neighbors=settings.DETECTOR_MIN_NEIGHBORS,
        min_size=settings.MIN_FACE_SIZE
    )
