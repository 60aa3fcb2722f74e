"""Tests for the one-face detection gate."""

from face_attendance.detect import DetectionGate, DetectionState, FaceBox


def _boxes(n):
    return [FaceBox.from_xywh(i * 100, 0, 80, 80) for i in range(n)]


def test_classify_by_face_count():
    assert DetectionGate.classify([]) == DetectionState.EMPTY
    assert DetectionGate.classify(_boxes(1)) == DetectionState.SINGLE
    assert DetectionGate.classify(_boxes(2)) == DetectionState.CROWDED
    assert DetectionGate.classify(_boxes(5)) == DetectionState.CROWDED


def test_state_follows_current_frame_only():
    gate = DetectionGate()

    assert gate.update(_boxes(1)) == DetectionState.SINGLE
    assert gate.allows_recognition
    assert gate.update(_boxes(2)) == DetectionState.CROWDED
    assert not gate.allows_recognition
    assert gate.update(_boxes(1)) == DetectionState.SINGLE


def test_reset_returns_to_empty():
    gate = DetectionGate()
    gate.update(_boxes(1))

    gate.reset()

    assert gate.state == DetectionState.EMPTY


def test_facebox_geometry():
    box = FaceBox.from_xywh(10, 20, 30, 40)

    assert box.bottom_right == (40, 60)
    assert (box.width, box.height, box.area) == (30, 40, 1200)
    assert box.as_xywh() == (10, 20, 30, 40)
