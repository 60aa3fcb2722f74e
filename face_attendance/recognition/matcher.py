# face_attendance/recognition/matcher.py
"""
Matcher - so khớp probe embedding với gallery bằng cosine similarity.

Chỉ chấp nhận similarity LỚN HƠN threshold (strict). Khi bằng nhau,
giữ identity gặp trước.
"""
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

DEFAULT_THRESHOLD = 0.85


@dataclass(frozen=True)
class RecognitionResult:
    """NoMatch (identity=None) hoặc Matched{identity, similarity}."""
    identity: Optional[object] = None
    similarity: float = 0.0

    @property
    def is_match(self) -> bool:
        return self.identity is not None

    @property
    def name(self) -> Optional[str]:
        return self.identity.display_name if self.identity is not None else None


NO_MATCH = RecognitionResult()


def cosine_similarity(a, b) -> float:
    """
    dot(a, b) / (|a| * |b|) trên phần chung độ dài của 2 vector.
    Vector có norm 0 -> 0.0.
    """
    if a is None or b is None:
        return 0.0

    n = min(len(a), len(b))
    va = np.asarray(a[:n], dtype=np.float64)
    vb = np.asarray(b[:n], dtype=np.float64)

    norm_a = float(np.dot(va, va))
    norm_b = float(np.dot(vb, vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    return float(np.dot(va, vb)) / (np.sqrt(norm_a) * np.sqrt(norm_b))


def match(probe, gallery: Iterable, threshold: float = DEFAULT_THRESHOLD) -> RecognitionResult:
    """
    Tìm identity giống probe nhất.

    Args:
        probe: embedding
        gallery: danh sách Identity
        threshold: similarity phải > threshold

    Returns:
        RecognitionResult (NO_MATCH nếu không ai vượt threshold)
    """
    best = NO_MATCH

    for identity in gallery:
        if identity.embedding is None:
            continue

        similarity = cosine_similarity(probe, identity.embedding)
        if similarity > threshold and similarity > best.similarity:
            best = RecognitionResult(identity=identity, similarity=similarity)

    return best


class Matcher:
    """Giữ threshold cấu hình, dùng trong detection loop."""

    def __init__(self, threshold: float = DEFAULT_THRESHOLD):
        self.threshold = threshold

    def match(self, probe, gallery: Iterable) -> RecognitionResult:
        return match(probe, gallery, self.threshold)
