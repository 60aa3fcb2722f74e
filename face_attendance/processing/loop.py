# face_attendance/processing/loop.py
"""
Detection Loop - vòng lặp xử lý frame.

Mỗi tick chạy trọn vẹn:
    detect -> DetectionGate -> (1 mặt) extract + match -> session.observe -> render

Tick không chồng lên nhau. I/O storage (refresh gallery) chạy trong một
worker thread riêng; loop tiếp tục với gallery cũ cho tới khi load xong.
Dừng bằng stop(): set cancellation Event, hủy observation đang giữ.
"""
import time
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..core.errors import InvalidRegion
from ..detect.gate import DetectionGate, DetectionState
from ..recognition.matcher import NO_MATCH, Matcher, RecognitionResult
from .display import FaceStatus

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    DetectionState.EMPTY: "No faces detected. Position yourself in front of the camera.",
    DetectionState.CROWDED: "Multiple faces detected ({count}). Only one person may be in frame.",
}


@dataclass
class FrameReport:
    """Kết quả của một tick."""
    state: DetectionState
    boxes: List = field(default_factory=list)
    result: RecognitionResult = NO_MATCH

    @property
    def message(self) -> str:
        if self.state in STATUS_MESSAGES:
            return STATUS_MESSAGES[self.state].format(count=len(self.boxes))
        if self.result.is_match:
            return f"Recognized: {self.result.name} ({round(self.result.similarity * 100)}% confidence)"
        return "Face detected but not recognized. Please register this person first."


class DetectionLoop:
    """
    Vòng lặp camera -> nhận diện -> observation.

    Args:
        camera: object có read() -> frame hoặc None
        detector: object có detect_faces(frame) -> List[FaceBox]
        service: AttendanceService (gallery, session, extractor)
        matcher: Matcher (threshold)
        display: DisplayHandler hoặc None (headless)
        refresh_interval: Giây giữa các lần reload gallery (0 = tắt)
    """

    def __init__(
        self,
        camera,
        detector,
        service,
        matcher: Optional[Matcher] = None,
        display=None,
        refresh_interval: float = 5.0,
        clock: Callable[[], float] = time.monotonic
    ):
        self.camera = camera
        self.detector = detector
        self.service = service
        self.matcher = matcher or Matcher()
        self.display = display
        self.refresh_interval = refresh_interval
        self._clock = clock

        self.gate = DetectionGate()
        self.stop_event = threading.Event()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending_refresh = None
        self._last_refresh = 0.0
        self._banner = None
        self.frame_count = 0

    @property
    def session(self):
        return self.service.session

    # === ONE TICK ===
    def tick(self, frame) -> FrameReport:
        """Xử lý một frame. Không bao giờ raise vì InvalidRegion."""
        self.frame_count += 1
        boxes = list(self.detector.detect_faces(frame))
        state = self.gate.update(boxes)

        result = NO_MATCH
        if self.gate.allows_recognition:
            try:
                probe = self.service.extractor.extract(frame, boxes[0])
            except InvalidRegion as e:
                logger.debug(f"Bỏ qua frame {self.frame_count}: {e}")
            else:
                result = self.matcher.match(probe, self.service.gallery.all())

        self.session.observe(state, result)

        report = FrameReport(state=state, boxes=boxes, result=result)
        self._render(frame, report)
        return report

    def _render(self, frame, report: FrameReport):
        if self.display is None:
            return

        if report.state == DetectionState.SINGLE:
            status = FaceStatus.RECOGNIZED if report.result.is_match else FaceStatus.UNKNOWN
            self.display.draw_face(
                frame, report.boxes[0], status,
                name=report.result.name,
                similarity=report.result.similarity if report.result.is_match else None
            )
        else:
            for box in report.boxes:
                self.display.draw_face(frame, box, FaceStatus.CROWDED)

        self.display.draw_status(frame, report.message)

        if self._banner is not None:
            result, until = self._banner
            if self._clock() < until:
                self.display.draw_commit_result(frame, result)
            else:
                self._banner = None

    def announce(self, result, duration: float = 2.0):
        """Hiện kết quả điểm danh trên overlay trong `duration` giây."""
        self._banner = (result, self._clock() + duration)

    # === GALLERY REFRESH ===
    def _maybe_refresh_gallery(self):
        """Submit reload gallery vào worker nếu tới hạn và không có job đang chạy."""
        if not self.refresh_interval or self._executor is None:
            return

        if self._pending_refresh is not None:
            if not self._pending_refresh.done():
                return
            error = self._pending_refresh.exception()
            if error is not None:
                logger.warning(f"[Gallery] Refresh lỗi: {error}")
            self._pending_refresh = None

        now = self._clock()
        if now - self._last_refresh >= self.refresh_interval:
            self._last_refresh = now
            self._pending_refresh = self._executor.submit(self.service.load_gallery)

    # === RUN / STOP ===
    def run(self, on_frame: Optional[Callable] = None):
        """
        Chạy tới khi stop() hoặc camera hết frame.

        Args:
            on_frame: callback(frame, report) -> True để dừng (vd. phím 'q')
        """
        self.stop_event.clear()
        self.session.start()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="gallery-refresh")
        self._last_refresh = self._clock()

        try:
            while not self.stop_event.is_set():
                self._maybe_refresh_gallery()

                frame = self.camera.read()
                if frame is None:
                    logger.warning("Không đọc được camera!")
                    break

                report = self.tick(frame)

                if on_frame is not None and on_frame(frame, report):
                    break
        finally:
            self.stop()
            self._executor.shutdown(wait=True)
            self._executor = None

    def stop(self):
        """Dừng loop ngay, observation đang giữ bị hủy."""
        self.stop_event.set()
        self.session.stop()
        self.gate.reset()
