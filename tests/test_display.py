"""Tests for the overlay renderer."""

import numpy as np

from face_attendance.detect import FaceBox
from face_attendance.processing import CommitOutcome, CommitResult, DisplayHandler, FaceStatus

BOX = FaceBox((40, 60), (120, 140))


def _blank():
    return np.zeros((240, 320, 3), dtype=np.uint8)


def test_recognized_face_drawn_in_green():
    frame = _blank()

    DisplayHandler().draw_face(frame, BOX, FaceStatus.RECOGNIZED, name="Priya", similarity=0.93)

    assert tuple(frame[100, 40]) == (0, 255, 0)


def test_disabled_overlay_is_noop():
    frame = _blank()
    display = DisplayHandler(overlay_enabled=False)

    display.draw_face(frame, BOX, FaceStatus.UNKNOWN)
    display.draw_status(frame, "No faces detected.")
    display.draw_commit_result(frame, CommitResult(CommitOutcome.NO_RECENT_MATCH))

    assert not frame.any()
    assert display.show("test", frame) == -1


def test_status_line_and_commit_banner():
    frame = _blank()
    display = DisplayHandler()

    display.draw_status(frame, "Recognized: Priya (93% confidence)")
    assert frame[225:].any()

    before = frame.copy()
    display.draw_commit_result(frame, CommitResult(CommitOutcome.MARKED, name="Priya"))
    assert not np.array_equal(before, frame)
