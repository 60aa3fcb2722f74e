"""Shared fixtures: temp stores, fake clock, synthetic frames."""

import numpy as np
import pytest

from face_attendance.data import AttendanceDatabase, LocalCache
from face_attendance.processing import AttendanceService, AttendanceSession
from face_attendance.recognition import EMBEDDING_DIM, Identity, as_embedding


class FakeClock:
    """Epoch seconds, advanced by hand."""

    def __init__(self, start: float = 1704103200.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def unit_vector(index: int) -> np.ndarray:
    values = np.zeros(EMBEDDING_DIM)
    values[index] = 1.0
    return as_embedding(values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_identity():
    def _make(name, usn="US001", index=0, record_id=None, embedding=None):
        return Identity(
            display_name=name,
            external_id=usn,
            embedding=unit_vector(index) if embedding is None else as_embedding(embedding),
            record_id=record_id,
        )
    return _make


@pytest.fixture
def database(tmp_path) -> AttendanceDatabase:
    db = AttendanceDatabase(str(tmp_path / "attendance.db"))
    db.init_db()
    return db


@pytest.fixture
def cache(tmp_path) -> LocalCache:
    return LocalCache(str(tmp_path / "local_cache.json"))


@pytest.fixture
def session(clock) -> AttendanceSession:
    s = AttendanceSession(clock=clock)
    s.start()
    return s


@pytest.fixture
def service(database, cache, session, tmp_path) -> AttendanceService:
    return AttendanceService(
        database=database,
        cache=cache,
        session=session,
        images_dir=str(tmp_path / "student-images"),
    )


@pytest.fixture
def frame() -> np.ndarray:
    """240x320 BGR frame with a reproducible random texture."""
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, size=(240, 320, 3), dtype=np.uint8)
