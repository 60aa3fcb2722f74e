"""End-to-end tests for AttendanceService (enroll -> match -> observe -> commit)."""

import threading

import numpy as np
import pytest

from face_attendance.core.errors import DuplicateIdentity, InvalidRegion, StoreUnavailable
from face_attendance.data import AttendanceDatabase, LocalCache
from face_attendance.detect import DetectionState, FaceBox
from face_attendance.processing import AttendanceService, AttendanceSession, CommitOutcome, calendar_day
from face_attendance.recognition import match


def _observe(service, query):
    result = match(query, service.gallery.all())
    service.session.observe(DetectionState.SINGLE, result)
    return result


def test_enroll_match_observe_commit(service, clock):
    embedding = np.linspace(0.1, 0.9, 128)
    priya = service.enroll("Priya", "us001", embedding=embedding)

    result = _observe(service, embedding)
    assert result.identity is priya
    assert result.similarity == pytest.approx(1.0)

    clock.advance(1.5)
    outcome = service.mark_attendance()

    assert outcome.outcome == CommitOutcome.MARKED
    record = outcome.record
    assert (record.display_name, record.external_id, record.date) == ("Priya", "US001", calendar_day())
    assert record.timestamp > 0
    assert [r['name'] for r in service.today_records()] == ["Priya"]
    assert service.cache.attendance()[0]['usn'] == "US001"


def test_second_mark_same_day_rejected(service):
    embedding = np.linspace(0.1, 0.9, 128)
    service.enroll("Priya", "US001", embedding=embedding)

    _observe(service, embedding)
    assert service.mark_attendance().is_marked

    _observe(service, embedding)
    again = service.mark_attendance()

    assert again.outcome == CommitOutcome.ALREADY_MARKED
    assert len(service.today_records()) == 1


def test_concurrent_marks_create_one_record(service):
    embedding = np.linspace(0.1, 0.9, 128)
    service.enroll("Priya", "US001", embedding=embedding)
    _observe(service, embedding)

    results = []
    threads = [threading.Thread(target=lambda: results.append(service.mark_attendance())) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(r.is_marked for r in results) == 1
    assert len(service.today_records()) == 1


def test_enroll_rejects_duplicates_and_blank_fields(service):
    service.enroll("Priya", "US001", embedding=np.ones(128))

    with pytest.raises(DuplicateIdentity) as by_name:
        service.enroll("Priya", "US002", embedding=np.ones(128))
    with pytest.raises(DuplicateIdentity) as by_usn:
        service.enroll("Ravi", "us001", embedding=np.ones(128))
    with pytest.raises(ValueError):
        service.enroll("  ", "US003", embedding=np.ones(128))

    assert by_name.value.field == "name"
    assert by_usn.value.field == "usn"
    assert len(service.gallery) == 1


def test_enroll_from_frame(service, frame):
    box = FaceBox((40, 40), (160, 160))

    identity = service.enroll("Asha", "US010", frame=frame, box=box)

    assert np.array_equal(identity.embedding, service.extractor.extract(frame, box))
    with pytest.raises(InvalidRegion):
        service.enroll("Ravi", "US011", frame=frame, box=FaceBox((10, 10), (10, 10)))


def test_remove_updates_all_stores(service, tmp_path):
    identity = service.enroll("Priya", "US001", embedding=np.ones(128), image=b"jpeg-bytes")
    image_path = tmp_path / "student-images" / "US001.jpg"
    assert image_path.exists()

    assert service.remove(identity.record_id)
    assert not service.remove(identity.record_id)

    assert "Priya" not in service.gallery
    assert service.database.list_students() == []
    assert service.cache.identities() == []
    assert not image_path.exists()


def test_load_gallery_prefers_database_over_cache(service, make_identity):
    service.database.add_student(make_identity("Priya", usn="US001"))
    service.cache.add_identity({'id': 99, 'name': "Priya", 'usn': "US999", 'faceEmbedding': [0.7] * 128})
    service.cache.add_identity({'id': 100, 'name': "Ravi", 'usn': "US002", 'faceEmbedding': [0.4] * 128})

    assert service.load_gallery() == 2
    assert service.gallery.get("Priya").external_id == "US001"
    assert service.gallery.get("Ravi").record_id == 100


def test_degraded_mode_uses_local_cache(tmp_path, clock):
    service = AttendanceService(
        database=AttendanceDatabase(str(tmp_path / "missing" / "attendance.db")),
        cache=LocalCache(str(tmp_path / "local_cache.json")),
        session=AttendanceSession(clock=clock),
    )
    service.session.start()
    embedding = np.linspace(0.2, 0.8, 128)

    identity = service.enroll("Priya", "US001", embedding=embedding)
    assert service.degraded
    assert identity.record_id is not None
    assert service.cache.identities()[0]['name'] == "Priya"

    _observe(service, embedding)
    assert service.mark_attendance().is_marked
    assert [r['name'] for r in service.today_records()] == ["Priya"]

    stats = service.stats()
    assert stats['degraded']
    assert (stats['totalStudents'], stats['presentToday']) == (1, 1)

    assert service.load_gallery() == 1


def test_record_written_during_outage_still_blocks_after_recovery(tmp_path, clock):
    db_dir = tmp_path / "db"
    database = AttendanceDatabase(str(db_dir / "attendance.db"))
    service = AttendanceService(
        database=database,
        cache=LocalCache(str(tmp_path / "local_cache.json")),
        session=AttendanceSession(clock=clock),
    )
    service.session.start()
    embedding = np.linspace(0.2, 0.8, 128)
    service.enroll("Priya", "US001", embedding=embedding)

    _observe(service, embedding)
    assert service.mark_attendance().is_marked

    db_dir.mkdir()
    database.init_db()
    clock.advance(60)
    _observe(service, embedding)
    again = service.mark_attendance()

    assert again.outcome == CommitOutcome.ALREADY_MARKED
    assert not service.degraded
    assert [r['name'] for r in service.cache.attendance()] == ["Priya"]
    assert [r['name'] for r in service.today_records()] == ["Priya"]


def test_remove_during_outage_changes_nothing(service, tmp_path):
    identity = service.enroll("Priya", "US001", embedding=np.ones(128))
    db_path = service.database.db_path
    service.database.db_path = str(tmp_path / "gone" / "attendance.db")

    with pytest.raises(StoreUnavailable):
        service.remove(identity.record_id)

    assert "Priya" in service.gallery
    assert [f['name'] for f in service.cache.identities()] == ["Priya"]

    service.database.db_path = db_path
    assert service.load_gallery() == 1
    assert service.remove(identity.record_id)
    assert service.load_gallery() == 0
