# face_attendance/recognition/features.py
"""
Feature Extractor - chữ ký độ sáng/màu 128 chiều của vùng khuôn mặt.
====================================================================
Pipeline:
1. Crop vùng FaceBox (clip vào frame)
2. Resize về tile 100x100
3. Lấy mẫu 128 pixel cách đều nhau (stride 78 pixel) trên buffer đã flatten
4. Trung bình 3 kênh màu, chia 255 -> giá trị trong [0, 1]

Không phải descriptor học máy: rẻ, tất định, tái lập bit-by-bit với cùng input.
"""
import cv2
import numpy as np

from ..core.errors import InvalidRegion

TILE_SIZE = 100
EMBEDDING_DIM = 128
SAMPLE_STRIDE = (TILE_SIZE * TILE_SIZE) // EMBEDDING_DIM  # 78 pixel

_SAMPLE_INDICES = np.arange(EMBEDDING_DIM) * SAMPLE_STRIDE


def as_embedding(values) -> np.ndarray:
    """
    Chuyển list/array 128 số thành embedding read-only (float32).

    Raises:
        ValueError nếu số chiều khác 128
    """
    arr = np.array(values, dtype=np.float32).reshape(-1)
    if arr.shape[0] != EMBEDDING_DIM:
        raise ValueError(f"embedding dim {arr.shape[0]} != {EMBEDDING_DIM}")
    arr.setflags(write=False)
    return arr


def validate_embedding(values) -> np.ndarray:
    """
    as_embedding() cho dữ liệu từ bên ngoài (API): mọi giá trị phải trong [0, 1].

    Raises:
        ValueError nếu sai số chiều, có giá trị ngoài [0, 1] hoặc NaN
        TypeError nếu không phải dãy số
    """
    arr = as_embedding(values)
    if not np.all((arr >= 0.0) & (arr <= 1.0)):
        raise ValueError("embedding values must be in [0, 1]")
    return arr


class FeatureExtractor:
    """Trích embedding 128 chiều từ frame BGR + FaceBox. Stateless."""

    tile_size = TILE_SIZE
    embedding_dim = EMBEDDING_DIM

    def crop(self, frame: np.ndarray, box) -> np.ndarray:
        """Cắt vùng box khỏi frame (đã clip vào biên frame)."""
        if box.width <= 0 or box.height <= 0:
            raise InvalidRegion(f"degenerate face box {box.width}x{box.height}")

        h, w = frame.shape[:2]
        x1 = max(0, int(round(box.top_left[0])))
        y1 = max(0, int(round(box.top_left[1])))
        x2 = min(w, int(round(box.bottom_right[0])))
        y2 = min(h, int(round(box.bottom_right[1])))

        if x2 <= x1 or y2 <= y1:
            raise InvalidRegion(f"face box outside frame: {box}")

        return frame[y1:y2, x1:x2]

    def extract(self, frame: np.ndarray, box) -> np.ndarray:
        """
        Trích xuất embedding từ vùng khuôn mặt.

        Args:
            frame: ảnh BGR uint8 (H, W, 3) hoặc grayscale (H, W)
            box: FaceBox

        Returns:
            numpy array shape (128,), float32, read-only, giá trị trong [0, 1]
        """
        face = self.crop(frame, box)
        tile = cv2.resize(face, (TILE_SIZE, TILE_SIZE), interpolation=cv2.INTER_LINEAR)

        if tile.ndim == 2:
            pixels = tile.reshape(-1, 1)
        else:
            pixels = tile.reshape(-1, tile.shape[2])[:, :3]

        samples = pixels[_SAMPLE_INDICES].astype(np.float64)
        emb = samples.mean(axis=1) / 255.0
        return as_embedding(emb)
