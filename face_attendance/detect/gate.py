# face_attendance/detect/gate.py
"""
Detection Gate - chỉ cho phép nhận diện khi trong frame có đúng 1 khuôn mặt.

- EMPTY   (0 mặt):  không nhận diện, observation bị hủy
- SINGLE  (1 mặt):  được nhận diện
- CROWDED (>=2 mặt): không nhận diện ai cả, observation bị hủy

Trạng thái chỉ phụ thuộc frame hiện tại (không có hysteresis).
"""
from enum import Enum
from typing import Sequence


class DetectionState(Enum):
    """Trạng thái theo số khuôn mặt trong frame."""
    EMPTY = "empty"
    SINGLE = "single"
    CROWDED = "crowded"


class DetectionGate:

    def __init__(self):
        self.state = DetectionState.EMPTY

    @staticmethod
    def classify(boxes: Sequence) -> DetectionState:
        count = len(boxes)
        if count == 0:
            return DetectionState.EMPTY
        if count == 1:
            return DetectionState.SINGLE
        return DetectionState.CROWDED

    def update(self, boxes: Sequence) -> DetectionState:
        """Gọi đúng 1 lần mỗi frame tick."""
        self.state = self.classify(boxes)
        return self.state

    @property
    def allows_recognition(self) -> bool:
        return self.state == DetectionState.SINGLE

    def reset(self):
        self.state = DetectionState.EMPTY
