from __future__ import annotations

from typing import Sequence, Union

import numpy as np

VectorLike = Union[Sequence[float], np.ndarray]


def cosine_similarity(a: VectorLike, b: VectorLike) -> float:
    """Cosine similarity of two equal-length vectors.

    A zero-magnitude (or empty) vector carries no direction, so it scores 0.0
    against anything instead of producing NaN.
    """
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    if va.shape != vb.shape:
        raise ValueError(f"vector length mismatch: {va.size} != {vb.size}")

    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    value = float(va @ vb) / (norm_a * norm_b)
    return float(np.clip(value, -1.0, 1.0))


def _normalize_rows(matrix: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    # zero rows stay zero and therefore score 0.0
    return matrix / np.where(norms == 0.0, 1.0, norms)


def cosine_similarity_matrix(rows: np.ndarray, cols: np.ndarray) -> np.ndarray:
    """Pairwise cosine between the rows of two ``(n, dim)`` / ``(k, dim)`` matrices."""
    rows = np.asarray(rows, dtype=float)
    cols = np.asarray(cols, dtype=float)
    if rows.shape[1] != cols.shape[1]:
        raise ValueError(f"vector length mismatch: {rows.shape[1]} != {cols.shape[1]}")
    sim = _normalize_rows(rows) @ _normalize_rows(cols).T
    return np.clip(sim, -1.0, 1.0)
