# face_attendance/processing/display.py
"""
Display/UI Handler.

Vẽ bounding box, tên, thông báo trạng thái lên frame.
Tách biệt logic hiển thị khỏi logic nhận diện.

Usage:
    display = DisplayHandler(overlay_enabled=True)
    display.draw_face(frame, box, FaceStatus.RECOGNIZED, name='Priya', similarity=0.93)
    display.draw_status(frame, "Recognized: Priya (93% confidence)")
"""
import cv2
import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class FaceStatus(Enum):
    """Trạng thái khuôn mặt."""
    UNKNOWN = "unknown"       # Không khớp ai trong gallery
    RECOGNIZED = "recognized"
    CROWDED = "crowded"       # Một trong nhiều mặt - không nhận diện


@dataclass
class ColorScheme:
    """Bảng màu (BGR)."""
    UNKNOWN: Tuple[int, int, int] = (0, 0, 255)        # Đỏ
    RECOGNIZED: Tuple[int, int, int] = (0, 255, 0)     # Xanh lá
    CROWDED: Tuple[int, int, int] = (0, 255, 255)      # Vàng
    STATUS_TEXT: Tuple[int, int, int] = (255, 255, 255)
    STATUS_BG: Tuple[int, int, int] = (40, 40, 40)
    MARKED: Tuple[int, int, int] = (0, 255, 0)
    REJECTED: Tuple[int, int, int] = (0, 165, 255)     # Cam


class DisplayHandler:
    """Vẽ overlay. Khi overlay_enabled=False mọi method là no-op."""

    def __init__(
        self,
        overlay_enabled: bool = True,
        colors: Optional[ColorScheme] = None,
        font: int = cv2.FONT_HERSHEY_SIMPLEX,
        font_scale: float = 0.6,
        thickness: int = 2
    ):
        self.enabled = overlay_enabled
        self.colors = colors or ColorScheme()
        self.font = font
        self.font_scale = font_scale
        self.thickness = thickness

    def draw_face(
        self,
        frame: np.ndarray,
        box,
        status: FaceStatus = FaceStatus.UNKNOWN,
        name: Optional[str] = None,
        similarity: Optional[float] = None
    ):
        """
        Vẽ bounding box và label.

        Args:
            frame: Frame để vẽ
            box: FaceBox
            status: Trạng thái khuôn mặt
            name: Tên (nếu đã nhận diện)
            similarity: Cosine similarity với identity khớp
        """
        if not self.enabled:
            return

        x, y, w, h = box.as_xywh()
        color = getattr(self.colors, status.name, self.colors.UNKNOWN)
        thickness = self.thickness if status != FaceStatus.CROWDED else 1

        cv2.rectangle(frame, (x, y), (x + w, y + h), color, thickness)

        if status == FaceStatus.RECOGNIZED and name:
            label = name
            if similarity is not None:
                label += f" {similarity * 100:.0f}%"
        elif status == FaceStatus.UNKNOWN:
            label = "Unknown Person - Contact Admin"
        else:
            label = ""

        if label:
            (tw, th), _ = cv2.getTextSize(label, self.font, self.font_scale, self.thickness)
            top = max(0, y - th - 12)
            cv2.rectangle(frame, (x, top), (x + tw + 10, top + th + 10), color, -1)
            cv2.putText(
                frame, label,
                (x + 5, top + th + 4),
                self.font, self.font_scale, self.colors.STATUS_TEXT, self.thickness
            )

    def draw_status(self, frame: np.ndarray, message: str, color: Optional[Tuple[int, int, int]] = None):
        """Dòng trạng thái phía dưới frame."""
        if not self.enabled or not message:
            return

        h, w = frame.shape[:2]
        cv2.rectangle(frame, (0, h - 30), (w, h), self.colors.STATUS_BG, -1)
        cv2.putText(
            frame, message,
            (10, h - 10),
            self.font, 0.5, color or self.colors.STATUS_TEXT, 1
        )

    def draw_commit_result(self, frame: np.ndarray, result, position: Tuple[int, int] = (10, 40)):
        """Thông báo kết quả điểm danh."""
        if not self.enabled:
            return

        if result.is_marked:
            text = f"MARKED: {result.name}"
            color = self.colors.MARKED
        else:
            text = result.outcome.value.replace('_', ' ').upper()
            color = self.colors.REJECTED

        cv2.putText(frame, text, position, self.font, 1.0, color, 3)

    def show(self, window_name: str, frame: np.ndarray) -> int:
        """
        Hiển thị frame và trả về phím nhấn.

        Returns:
            Mã phím hoặc -1 nếu overlay tắt
        """
        if not self.enabled:
            return -1

        cv2.imshow(window_name, frame)
        return cv2.waitKey(1) & 0xFF

    def destroy_windows(self):
        if self.enabled:
            cv2.destroyAllWindows()
