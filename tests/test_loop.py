"""Tests for DetectionLoop with a scripted camera and detector."""

import numpy as np

from face_attendance.detect import DetectionState, FaceBox
from face_attendance.processing import CommitOutcome, DetectionLoop

FACE = FaceBox((40, 40), (160, 160))
OTHER = FaceBox((180, 40), (300, 160))


class ScriptedDetector:
    """Trả về danh sách box theo thứ tự, rồi lặp lại box cuối."""

    def __init__(self, *frames):
        self.frames = list(frames)

    def detect_faces(self, frame):
        return self.frames.pop(0) if len(self.frames) > 1 else self.frames[0]


class ListCamera:

    def __init__(self, frames):
        self.frames = list(frames)

    def read(self):
        return self.frames.pop(0) if self.frames else None


def _enrolled(service, frame):
    service.enroll("Priya", "US001", frame=frame, box=FACE)


def test_single_face_is_recognized_and_observed(service, frame):
    _enrolled(service, frame)
    loop = DetectionLoop(camera=None, detector=ScriptedDetector([FACE]), service=service)

    report = loop.tick(frame)

    assert report.state == DetectionState.SINGLE
    assert report.result.name == "Priya"
    assert report.message.startswith("Recognized: Priya")
    assert service.session.last_observation is not None


def test_crowded_frame_clears_previous_match(service, frame):
    _enrolled(service, frame)
    loop = DetectionLoop(camera=None, detector=ScriptedDetector([FACE], [FACE, OTHER]), service=service)

    loop.tick(frame)
    report = loop.tick(frame)

    assert report.state == DetectionState.CROWDED
    assert not report.result.is_match
    assert service.session.last_observation is None
    assert service.mark_attendance().outcome == CommitOutcome.NO_RECENT_MATCH


def test_unknown_face_and_degenerate_box(service, frame):
    _enrolled(service, frame)
    stranger = np.full_like(frame, 200)
    degenerate = FaceBox((50, 50), (50, 90))
    loop = DetectionLoop(camera=None, detector=ScriptedDetector([degenerate]), service=service)

    report = loop.tick(stranger)

    assert report.state == DetectionState.SINGLE
    assert not report.result.is_match
    assert service.session.last_observation is None


def test_run_until_camera_ends_then_stops(service, frame):
    _enrolled(service, frame)
    seen = []
    loop = DetectionLoop(
        camera=ListCamera([frame, frame]),
        detector=ScriptedDetector([FACE]),
        service=service,
        refresh_interval=0,
    )

    loop.run(on_frame=lambda f, report: seen.append(report.state) and False)

    assert seen == [DetectionState.SINGLE, DetectionState.SINGLE]
    assert loop.stop_event.is_set()
    assert not service.session.is_running
    assert service.session.last_observation is None


def test_on_frame_can_request_stop(service, frame):
    loop = DetectionLoop(
        camera=ListCamera([frame] * 10),
        detector=ScriptedDetector([]),
        service=service,
        refresh_interval=0,
    )

    loop.run(on_frame=lambda f, report: loop.frame_count >= 3)

    assert loop.frame_count == 3


def test_gallery_refresh_runs_in_worker(service, frame, make_identity):
    ticks = iter([0.0, 10.0, 10.0, 20.0, 20.0, 30.0])
    loop = DetectionLoop(
        camera=ListCamera([frame] * 3),
        detector=ScriptedDetector([]),
        service=service,
        refresh_interval=5.0,
        clock=lambda: next(ticks, 30.0),
    )
    service.database.add_student(make_identity("Late", usn="US050"))

    loop.run()

    assert "Late" in service.gallery
