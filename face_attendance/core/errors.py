# face_attendance/core/errors.py
"""
Exceptions của hệ thống điểm danh.

Các trường hợp từ chối điểm danh (không có người, hết hạn, đã điểm danh)
KHÔNG phải exception - xem processing.attendance.CommitResult.
"""


class AttendanceError(Exception):
    """Base class cho mọi lỗi của face_attendance."""


class InvalidRegion(AttendanceError):
    """Vùng khuôn mặt suy biến (width/height <= 0 hoặc nằm ngoài frame)."""


class DuplicateIdentity(AttendanceError):
    """Tên hoặc mã số đã tồn tại trong gallery / database."""

    def __init__(self, key: str, field: str = "name"):
        self.key = key
        self.field = field
        super().__init__(f"{field} already registered: {key}")


class StoreUnavailable(AttendanceError):
    """Không truy cập được persistent store (SQLite / file)."""
