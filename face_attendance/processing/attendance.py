# face_attendance/processing/attendance.py
"""
Attendance Session - quyết định khi nào một lần nhận diện được điểm danh.

Session giữ observation gần nhất (kết quả nhận diện + thời điểm). Khi người
dùng yêu cầu điểm danh, commit() kiểm tra:
1. Có observation không
2. Observation còn trong cửa sổ 2 giây không
3. Người này đã điểm danh hôm nay chưa (so tên không phân biệt hoa thường)

commit() không ghi storage - caller tự persist record trả về.

Usage:
    session = AttendanceSession()
    session.start()

    # Mỗi frame
    session.observe(gate.state, matcher.match(probe, gallery.all()))

    # Khi bấm "Mark attendance"
    result = session.commit(calendar_day(), records_for_today)
    if result.is_marked:
        store.append_attendance(result.record)
"""
import time
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence

from ..detect.gate import DetectionState
from ..recognition.matcher import NO_MATCH, RecognitionResult

logger = logging.getLogger(__name__)

DETECTION_WINDOW_SECONDS = 2.0
MISSING_EXTERNAL_ID = "N/A"

DATE_FORMAT = "%a %b %d %Y"   # Mon Jan 01 2024
TIME_FORMAT = "%H:%M:%S"


def calendar_day(dt: Optional[datetime] = None) -> str:
    """Chuỗi ngày dùng làm khóa 'một lần mỗi ngày'."""
    return (dt or datetime.now()).strftime(DATE_FORMAT)


def clock_time(dt: Optional[datetime] = None) -> str:
    return (dt or datetime.now()).strftime(TIME_FORMAT)


class CommitOutcome(Enum):
    """Kết quả commit."""
    MARKED = "marked"
    NO_RECENT_MATCH = "no_recent_match"
    DETECTION_EXPIRED = "detection_expired"
    ALREADY_MARKED = "already_marked"


@dataclass
class AttendanceRecord:
    """Một lần điểm danh. Tối đa một record cho mỗi (tên, ngày)."""
    display_name: str
    external_id: str
    date: str
    time: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.display_name,
            'usn': self.external_id,
            'date': self.date,
            'time': self.time,
            'timestamp': self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AttendanceRecord":
        return cls(
            display_name=data['name'],
            external_id=data.get('usn') or MISSING_EXTERNAL_ID,
            date=data.get('date', ""),
            time=data.get('time', ""),
            timestamp=int(data.get('timestamp') or 0),
        )


@dataclass
class Observation:
    """Lần nhận diện gần nhất."""
    result: RecognitionResult
    observed_at: float


@dataclass
class CommitResult:
    """Kết quả của một lần yêu cầu điểm danh."""
    outcome: CommitOutcome
    record: Optional[AttendanceRecord] = None
    name: Optional[str] = None
    marked_at: Optional[str] = None     # Giờ đã điểm danh trước đó (ALREADY_MARKED)

    @property
    def is_marked(self) -> bool:
        return self.outcome == CommitOutcome.MARKED

    @property
    def message(self) -> str:
        if self.outcome == CommitOutcome.MARKED:
            return f"Attendance marked successfully for {self.name}"
        if self.outcome == CommitOutcome.NO_RECENT_MATCH:
            return "No recognized person detected. Please register first or position yourself properly."
        if self.outcome == CommitOutcome.DETECTION_EXPIRED:
            return "Person detection expired. Please position yourself in front of the camera."
        return f"{self.name} has already marked attendance today at {self.marked_at}."

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'outcome': self.outcome.value,
            'message': self.message,
            'name': self.name,
        }
        if self.record is not None:
            data['record'] = self.record.to_dict()
        if self.marked_at is not None:
            data['markedAt'] = self.marked_at
        return data


def _record_field(entry, attr: str, key: str):
    if isinstance(entry, dict):
        return entry.get(key)
    return getattr(entry, attr, None)


class AttendanceSession:
    """
    Trạng thái điểm danh của một phiên camera.

    Lifecycle: start() -> observe()* / commit()* -> stop()
    """

    def __init__(
        self,
        window_seconds: float = DETECTION_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time
    ):
        """
        Args:
            window_seconds: Thời gian observation còn hiệu lực
            clock: Hàm trả về epoch seconds (inject khi test)
        """
        self.window_seconds = window_seconds
        self._clock = clock
        self._running = False
        self._last_timestamp = 0
        self.last_observation: Optional[Observation] = None

    # === LIFECYCLE ===
    def start(self):
        self._running = True
        self.last_observation = None

    def stop(self):
        """Dừng phiên - observation đang giữ bị hủy."""
        self._running = False
        self.last_observation = None

    @property
    def is_running(self) -> bool:
        return self._running

    # === PER FRAME ===
    def observe(self, state: DetectionState, result: RecognitionResult = NO_MATCH):
        """Cập nhật observation theo frame hiện tại."""
        if not self._running or state != DetectionState.SINGLE or not result.is_match:
            self.last_observation = None
            return
        self.last_observation = Observation(result=result, observed_at=self._clock())

    # === COMMIT ===
    def commit(self, today: str, existing_records: Sequence = ()) -> CommitResult:
        """
        Quyết định có tạo AttendanceRecord mới hay không.

        Args:
            today: calendar_day() của hôm nay
            existing_records: AttendanceRecord hoặc dict đã có (ít nhất của hôm nay)

        Returns:
            CommitResult (MARKED kèm record mới, hoặc lý do từ chối)
        """
        observation = self.last_observation
        if observation is None:
            return CommitResult(CommitOutcome.NO_RECENT_MATCH)

        identity = observation.result.identity
        name = identity.display_name
        now = self._clock()

        if now - observation.observed_at > self.window_seconds:
            return CommitResult(CommitOutcome.DETECTION_EXPIRED, name=name)

        wanted = name.lower()
        for entry in existing_records:
            entry_name = _record_field(entry, 'display_name', 'name') or ""
            if entry_name.lower() == wanted and _record_field(entry, 'date', 'date') == today:
                return CommitResult(
                    CommitOutcome.ALREADY_MARKED,
                    name=name,
                    marked_at=_record_field(entry, 'time', 'time')
                )

        record = AttendanceRecord(
            display_name=name,
            external_id=identity.external_id or MISSING_EXTERNAL_ID,
            date=today,
            time=clock_time(datetime.fromtimestamp(now)),
            timestamp=self._next_timestamp(now)
        )
        return CommitResult(CommitOutcome.MARKED, record=record, name=name)

    def _next_timestamp(self, now: float) -> int:
        """Epoch milliseconds, tăng nghiêm ngặt giữa các lần commit."""
        ts = max(int(now * 1000), self._last_timestamp + 1)
        self._last_timestamp = ts
        return ts
