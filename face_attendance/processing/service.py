# face_attendance/processing/service.py
"""
Attendance Service - kết nối lõi nhận diện với storage.

- Gallery được load từ database (ưu tiên) rồi local cache, trùng tên giữ bản đầu
- Khi database lỗi (StoreUnavailable): log warning, chạy tiếp trên cache/bộ nhớ
- "Kiểm tra đã điểm danh hôm nay" + "ghi record" là atomic (một Lock)
"""
import os
import time
import logging
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..core.errors import DuplicateIdentity, InvalidRegion, StoreUnavailable
from ..recognition.features import FeatureExtractor, validate_embedding
from ..recognition.gallery import GalleryStore, Identity
from .attendance import AttendanceRecord, AttendanceSession, CommitResult, calendar_day

logger = logging.getLogger(__name__)

REGISTRATION_DATE_FORMAT = "%m/%d/%Y"


class AttendanceService:
    """
    Điều phối enroll / remove / mark attendance.

    Thread-safe: gọi được từ detection loop, keyboard handler và web thread.
    """

    def __init__(
        self,
        database,
        cache,
        gallery: Optional[GalleryStore] = None,
        session: Optional[AttendanceSession] = None,
        extractor: Optional[FeatureExtractor] = None,
        images_dir: Optional[str] = None
    ):
        self.database = database
        self.cache = cache
        self.gallery = gallery or GalleryStore()
        self.session = session or AttendanceSession()
        self.extractor = extractor or FeatureExtractor()
        self.images_dir = images_dir

        self._enroll_lock = threading.Lock()
        self._commit_lock = threading.Lock()
        self.degraded = False

    def _store_failed(self, action: str, error: Exception):
        if not self.degraded:
            logger.warning(f"⚠️ Database không khả dụng ({action}): {error} - chuyển sang local cache")
        self.degraded = True

    def _store_ok(self):
        if self.degraded:
            logger.info("✅ Database hoạt động trở lại")
        self.degraded = False

    # === GALLERY ===
    def load_gallery(self) -> int:
        """Load gallery từ database + cache. Returns số identity."""
        primary: List[Dict[str, Any]] = []
        try:
            primary = self.database.list_students()
            self._store_ok()
        except StoreUnavailable as e:
            self._store_failed("list students", e)

        try:
            local = self.cache.identities()
        except StoreUnavailable as e:
            logger.warning(f"[Cache] {e}")
            local = []

        count = self.gallery.load(primary + local)
        logger.debug(f"[Gallery] {count} identities ({len(primary)} db, {len(local)} cache)")
        return count

    # === ENROLL / REMOVE ===
    def enroll(
        self,
        name: str,
        usn: str,
        embedding=None,
        frame=None,
        box=None,
        image: Optional[bytes] = None
    ) -> Identity:
        """
        Đăng ký người mới.

        Args:
            name: Tên hiển thị (unique)
            usn: Mã số (unique, tự upper-case)
            embedding: 128 số trong [0, 1], hoặc None để trích từ frame + box
            image: ảnh JPEG lưu kèm (optional)

        Raises:
            ValueError: thiếu name/usn hoặc thiếu dữ liệu khuôn mặt
            InvalidRegion: box suy biến
            DuplicateIdentity: trùng tên / mã số
        """
        if not isinstance(name or "", str) or not isinstance(usn or "", str):
            raise ValueError("name and usn must be strings")
        name = (name or "").strip()
        usn = (usn or "").strip().upper()
        if not name or not usn:
            raise ValueError("name and usn are required")

        if embedding is None:
            if frame is None or box is None:
                raise ValueError("embedding or frame + box required")
            embedding = self.extractor.extract(frame, box)
        else:
            embedding = validate_embedding(embedding)

        with self._enroll_lock:
            if name in self.gallery:
                raise DuplicateIdentity(name)
            for other in self.gallery.all():
                if other.external_id == usn:
                    raise DuplicateIdentity(usn, 'usn')

            identity = Identity(
                display_name=name,
                external_id=usn,
                embedding=embedding,
                enrolled_at=datetime.now().strftime(REGISTRATION_DATE_FORMAT),
                record_id=None
            )

            image_path = self._save_image(usn, image)
            record_id = None
            try:
                record_id = self.database.add_student(identity, image_path)
                self._store_ok()
            except StoreUnavailable as e:
                self._store_failed("add student", e)
            except DuplicateIdentity:
                self._remove_image(image_path)
                raise

            if record_id is None:
                record_id = int(time.time() * 1000)

            identity = Identity(
                display_name=name,
                external_id=usn,
                embedding=embedding,
                enrolled_at=identity.enrolled_at,
                record_id=record_id
            )

            try:
                self.cache.add_identity(identity.to_dict())
            except StoreUnavailable as e:
                logger.warning(f"[Cache] {e}")

            self.gallery.enroll(identity)

        logger.info(f"✅ Đã đăng ký: {name} ({usn})")
        return identity

    def enroll_from_image(self, name: str, usn: str, image_bytes: bytes, detector) -> Identity:
        """
        Đăng ký từ ảnh upload. Ảnh phải có đúng 1 khuôn mặt.

        Raises:
            InvalidRegion: không decode được, không có mặt, hoặc nhiều mặt
        """
        import cv2
        import numpy as np

        frame = cv2.imdecode(np.frombuffer(image_bytes, dtype=np.uint8), cv2.IMREAD_COLOR)
        if frame is None:
            raise InvalidRegion("cannot decode image")

        boxes = detector.detect_faces(frame)
        if not boxes:
            raise InvalidRegion("No face detected")
        if len(boxes) > 1:
            raise InvalidRegion("Multiple faces detected. Please ensure only one person is in frame.")

        return self.enroll(name, usn, frame=frame, box=boxes[0], image=image_bytes)

    def remove(self, record_id) -> bool:
        """
        Xóa identity theo record id (idempotent). Returns True nếu có xóa.

        Raises:
            StoreUnavailable: database lỗi, cache và gallery giữ nguyên
        """
        with self._enroll_lock:
            image_path = self.database.delete_student(record_id)
            self._store_ok()

            try:
                self.cache.remove_identity(record_id)
            except StoreUnavailable as e:
                logger.warning(f"[Cache] {e}")

            removed = self.gallery.remove(record_id)

        self._remove_image(image_path)
        if removed is not None:
            logger.info(f"🗑️ Đã xóa: {removed.display_name}")
        return removed is not None

    def _save_image(self, usn: str, image: Optional[bytes]) -> Optional[str]:
        if not image or not self.images_dir:
            return None
        try:
            os.makedirs(self.images_dir, exist_ok=True)
            path = os.path.join(self.images_dir, f"{usn}.jpg")
            with open(path, 'wb') as f:
                f.write(image)
        except OSError as e:
            logger.warning(f"Không lưu được ảnh {usn}: {e}")
            return None
        return path

    @staticmethod
    def _remove_image(path: Optional[str]):
        if path and os.path.exists(path):
            try:
                os.remove(path)
            except OSError as e:
                logger.warning(f"Không xóa được ảnh {path}: {e}")

    # === ATTENDANCE ===
    def attendance_records(self, date: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Record từ database cộng record chỉ có trong cache.

        Record ghi lúc database lỗi chỉ nằm trong cache, nên luôn merge cả hai
        (trùng (tên lower, ngày) giữ bản database).
        """
        records: List[Dict[str, Any]] = []
        try:
            records = self.database.list_attendance(date)
            self._store_ok()
        except StoreUnavailable as e:
            self._store_failed("list attendance", e)

        try:
            cached = self.cache.attendance()
        except StoreUnavailable as e:
            logger.warning(f"[Cache] {e}")
            cached = []

        seen = {((r.get('name') or "").lower(), r.get('date')) for r in records}
        for record in cached:
            if date is not None and record.get('date') != date:
                continue
            key = ((record.get('name') or "").lower(), record.get('date'))
            if key not in seen:
                seen.add(key)
                records.append(record)
        return records

    def today_records(self, today: Optional[str] = None) -> List[Dict[str, Any]]:
        return self.attendance_records(today or calendar_day())

    def mark_attendance(self) -> CommitResult:
        """
        Điểm danh người vừa được nhận diện.

        Check + append chạy trong một Lock để 2 request đồng thời không tạo
        2 record cho cùng một người trong ngày.
        """
        with self._commit_lock:
            today = calendar_day()
            result = self.session.commit(today, self.today_records(today))

            if not result.is_marked:
                logger.info(f"[Attendance] {result.outcome.value}: {result.message}")
                return result

            self._persist(result.record)

        logger.info(f"🟢 {result.name} - MARKED {result.record.date} {result.record.time}")
        return result

    def _persist(self, record: AttendanceRecord):
        try:
            self.database.append_attendance(record)
            self._store_ok()
        except StoreUnavailable as e:
            self._store_failed("append attendance", e)

        try:
            self.cache.append_attendance(record.to_dict())
        except StoreUnavailable as e:
            logger.warning(f"[Cache] {e}")

    def clear_attendance(self):
        """Xóa toàn bộ attendance (database + cache)."""
        with self._commit_lock:
            self.database.clear_attendance()
            try:
                self.cache.clear_attendance()
            except StoreUnavailable as e:
                logger.warning(f"[Cache] {e}")
        logger.info("🧹 Đã xóa toàn bộ attendance")

    # === REPORTS ===
    def stats(self) -> Dict[str, Any]:
        today = calendar_day()
        try:
            data = self.database.get_stats(today)
            self._store_ok()
        except StoreUnavailable as e:
            self._store_failed("stats", e)
            present = {r.get('name', '').lower() for r in self.today_records(today)}
            total = len(self.gallery)
            data = {
                'totalStudents': total,
                'presentToday': len(present),
                'absentToday': max(0, total - len(present)),
            }
        data['date'] = today
        data['degraded'] = self.degraded
        return data

    def export_csv(self, path: str, date: Optional[str] = None) -> str:
        return self.database.export_to_csv(path, date)
