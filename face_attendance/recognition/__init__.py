# face_attendance/recognition/__init__.py
"""
Face Recognition module.

- Embedding: 128-dim, pixel-sampling signature
- Matching: cosine similarity, threshold 0.85 (strict)
- Gallery: in-memory index of enrolled identities
"""

from .features import FeatureExtractor, as_embedding, validate_embedding, EMBEDDING_DIM, TILE_SIZE
from .gallery import GalleryStore, Identity
from .matcher import Matcher, RecognitionResult, NO_MATCH, cosine_similarity, match

__all__ = [
    'FeatureExtractor',
    'as_embedding',
    'validate_embedding',
    'EMBEDDING_DIM',
    'TILE_SIZE',
    'GalleryStore',
    'Identity',
    'Matcher',
    'RecognitionResult',
    'NO_MATCH',
    'cosine_similarity',
    'match',
]
