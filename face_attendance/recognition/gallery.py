# face_attendance/recognition/gallery.py
"""
Gallery Store - index trong bộ nhớ các identity đã đăng ký.

Index = list Identity + map display_name -> vị trí trong list.
Thread-safe: Lock cho mọi thao tác đọc/ghi (loop + web server thread).
"""
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import numpy as np

from ..core.errors import DuplicateIdentity
from .features import as_embedding

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Identity:
    """Người đã đăng ký. Không sửa tại chỗ - thay thế bằng identity mới."""
    display_name: str
    external_id: Optional[str]
    embedding: Optional[np.ndarray]
    enrolled_at: str = ""
    record_id: Any = None

    def to_dict(self, include_embedding: bool = True) -> Dict[str, Any]:
        """Dạng JSON (field names giống API cũ)."""
        data = {
            'id': self.record_id,
            'name': self.display_name,
            'usn': self.external_id,
            'registrationDate': self.enrolled_at,
        }
        if include_embedding and self.embedding is not None:
            data['faceEmbedding'] = [float(v) for v in self.embedding]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Identity":
        """
        Tạo Identity từ record JSON.

        Raises:
            ValueError nếu embedding có số chiều sai
        """
        raw = data.get('faceEmbedding', data.get('embedding'))
        embedding = as_embedding(raw) if raw is not None else None
        return cls(
            display_name=data['name'],
            external_id=data.get('usn'),
            embedding=embedding,
            enrolled_at=data.get('registrationDate') or "",
            record_id=data.get('id'),
        )


class GalleryStore:
    """Tập các identity dùng để so khớp."""

    def __init__(self):
        self._lock = threading.Lock()
        self._items: List[Identity] = []
        self._index: Dict[str, int] = {}

    def load(self, records: Iterable) -> int:
        """
        Thay toàn bộ index.

        - Record không có embedding (hoặc sai số chiều) bị bỏ qua
        - Trùng display_name: record xuất hiện TRƯỚC thắng

        Args:
            records: Identity hoặc dict JSON

        Returns:
            Số identity đã load
        """
        items: List[Identity] = []
        index: Dict[str, int] = {}

        for record in records:
            try:
                identity = record if isinstance(record, Identity) else Identity.from_dict(record)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"[Gallery] Bỏ qua record lỗi: {e}")
                continue

            if identity.embedding is None:
                continue
            if identity.display_name in index:
                logger.debug(f"[Gallery] Trùng tên {identity.display_name}, giữ bản đầu tiên")
                continue

            index[identity.display_name] = len(items)
            items.append(identity)

        with self._lock:
            self._items = items
            self._index = index

        return len(items)

    def enroll(self, identity: Identity):
        """
        Thêm identity mới.

        Raises:
            DuplicateIdentity nếu display_name đã tồn tại (gallery không đổi)
        """
        if identity.embedding is None:
            raise ValueError(f"{identity.display_name}: thiếu embedding")

        with self._lock:
            if identity.display_name in self._index:
                raise DuplicateIdentity(identity.display_name)
            self._index[identity.display_name] = len(self._items)
            self._items.append(identity)

    def remove(self, record_id) -> Optional[Identity]:
        """Xóa theo record_id. Không có thì không làm gì."""
        with self._lock:
            for pos, identity in enumerate(self._items):
                if identity.record_id == record_id:
                    del self._items[pos]
                    self._index = {item.display_name: i for i, item in enumerate(self._items)}
                    return identity
        return None

    def get(self, display_name: str) -> Optional[Identity]:
        with self._lock:
            pos = self._index.get(display_name)
            return self._items[pos] if pos is not None else None

    def all(self) -> List[Identity]:
        """Snapshot - không được phụ thuộc thứ tự."""
        with self._lock:
            return list(self._items)

    def __len__(self):
        with self._lock:
            return len(self._items)

    def __contains__(self, display_name):
        with self._lock:
            return display_name in self._index
