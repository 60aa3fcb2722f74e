"""Tests for cosine similarity and threshold matching."""

import numpy as np
import pytest

from face_attendance.recognition import NO_MATCH, Identity, Matcher, cosine_similarity, match


def test_self_similarity_is_one(frame):
    vec = frame[0, :128, 0].astype(np.float32) / 255.0

    assert cosine_similarity(vec, vec) == pytest.approx(1.0)


@pytest.mark.parametrize("threshold", [0.0, 0.5, 0.85, 0.99])
def test_self_match_accepted_below_one(make_identity, threshold):
    alice = make_identity("Alice", index=3)

    result = match(alice.embedding, [alice], threshold)

    assert result.identity is alice
    assert result.similarity == pytest.approx(1.0)


def test_zero_vector_similarity_is_zero():
    zero = np.zeros(128)

    assert cosine_similarity(zero, np.ones(128)) == 0.0
    assert cosine_similarity(np.ones(128), zero) == 0.0
    assert cosine_similarity(zero, zero) == 0.0


def test_similarity_uses_shared_prefix():
    assert cosine_similarity([1.0, 0.0, 5.0], [1.0, 0.0]) == pytest.approx(1.0)


def test_similarity_exactly_at_threshold_is_rejected(make_identity):
    # cos = 17 / (20 * 1) = 0.85
    edge = make_identity("Edge", embedding=[17, 10, 3, 1, 1] + [0] * 123)
    probe = np.zeros(128)
    probe[0] = 1.0

    assert cosine_similarity(probe, edge.embedding) == 0.85
    assert match(probe, [edge], 0.85) is NO_MATCH
    assert match(probe, [edge], 0.849).identity is edge


def test_never_returns_similarity_at_or_below_threshold(make_identity):
    gallery = [make_identity(f"P{i}", usn=f"US{i:03d}", index=i) for i in range(5)]
    probe = np.zeros(128)
    probe[:2] = [1.0, 1.0]   # cos 0.707 with P0 and P1

    assert match(probe, gallery, 0.85) is NO_MATCH
    assert match(probe, gallery, 0.7).similarity > 0.7


def test_best_similarity_wins(make_identity):
    near = make_identity("Near", embedding=[1.0, 0.1] + [0] * 126)
    nearer = make_identity("Nearer", embedding=[1.0, 0.01] + [0] * 126)
    probe = np.zeros(128)
    probe[0] = 1.0

    assert match(probe, [near, nearer]).identity is nearer


def test_tie_keeps_first_entry(make_identity):
    first = make_identity("First", index=0)
    second = make_identity("Second", usn="US002", index=0)

    assert match(first.embedding, [first, second]).identity is first
    assert match(first.embedding, [second, first]).identity is second


def test_empty_gallery_and_missing_embeddings():
    blank = Identity(display_name="Blank", external_id=None, embedding=None)

    assert match(np.ones(128), []) is NO_MATCH
    assert match(np.ones(128), [blank]) is NO_MATCH


def test_matcher_uses_configured_threshold(make_identity):
    edge = make_identity("Edge", embedding=[17, 10, 3, 1, 1] + [0] * 123)
    probe = np.zeros(128)
    probe[0] = 1.0

    assert not Matcher(0.85).match(probe, [edge]).is_match
    assert Matcher(0.8).match(probe, [edge]).name == "Edge"
