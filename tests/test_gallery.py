"""Tests for GalleryStore."""

import pytest

from face_attendance.core.errors import DuplicateIdentity
from face_attendance.recognition import GalleryStore, Identity


def _record(name, usn, value=0.5, record_id=None, dim=128):
    return {'id': record_id, 'name': name, 'usn': usn, 'faceEmbedding': [value] * dim}


def test_load_first_occurrence_wins():
    gallery = GalleryStore()

    count = gallery.load([
        _record("Asha", "US001", 0.1, record_id=1),
        _record("Asha", "US009", 0.9, record_id=9),
        _record("Ravi", "US002", record_id=2),
    ])

    assert count == 2
    assert gallery.get("Asha").record_id == 1
    assert gallery.get("Asha").external_id == "US001"


def test_load_skips_records_without_usable_embedding():
    gallery = GalleryStore()

    gallery.load([
        {'id': 1, 'name': "NoFace", 'usn': "US001"},
        _record("Short", "US002", dim=64),
        {'usn': "US003", 'faceEmbedding': [0.1] * 128},
        _record("Good", "US004"),
    ])

    assert [i.display_name for i in gallery.all()] == ["Good"]


def test_load_replaces_previous_contents(make_identity):
    gallery = GalleryStore()
    gallery.enroll(make_identity("Old"))

    gallery.load([_record("New", "US002")])

    assert "Old" not in gallery
    assert "New" in gallery
    assert len(gallery) == 1


def test_enroll_duplicate_name_leaves_gallery_unchanged(make_identity):
    gallery = GalleryStore()
    enrolled = make_identity("Priya", index=0)
    gallery.enroll(enrolled)

    with pytest.raises(DuplicateIdentity) as exc:
        gallery.enroll(make_identity("Priya", usn="US777", index=5))

    assert exc.value.key == "Priya"
    assert gallery.all() == [enrolled]


def test_enroll_requires_embedding():
    with pytest.raises(ValueError):
        GalleryStore().enroll(Identity(display_name="X", external_id="US1", embedding=None))


def test_remove_is_idempotent(make_identity):
    gallery = GalleryStore()
    gallery.enroll(make_identity("A", record_id=1))
    gallery.enroll(make_identity("B", usn="US002", index=1, record_id=2))

    assert gallery.remove(1).display_name == "A"
    assert gallery.remove(1) is None
    assert gallery.remove(404) is None
    assert [i.display_name for i in gallery.all()] == ["B"]
    assert gallery.get("B").record_id == 2


def test_identity_dict_roundtrip_keeps_api_field_names(make_identity):
    identity = make_identity("Priya", record_id=3)
    data = identity.to_dict()

    assert set(data) == {'id', 'name', 'usn', 'registrationDate', 'faceEmbedding'}
    assert 'faceEmbedding' not in identity.to_dict(include_embedding=False)
    assert Identity.from_dict(data).embedding.tolist() == identity.embedding.tolist()
