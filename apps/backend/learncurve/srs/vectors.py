"""Vector helpers shared by card scoring and similar-card search.

埋め込みベクトルはカード行に JSON 文字列として保存される。ここではその
(デ)シリアライズとコサイン類似度だけを扱い、壊れたデータは例外ではなく
「埋め込みなし(None)」として呼び出し側へ返す。
"""

from __future__ import annotations

import json
import math
from typing import Any, List, Optional, Sequence


class VectorLengthMismatchError(ValueError):
    """Raised when two vectors of different dimensionality are compared."""

    def __init__(self, left: int, right: int) -> None:
        super().__init__(f"Vectors must have the same length ({left} != {right})")
        self.left = left
        self.right = right


def cosine_similarity(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    """Return the cosine similarity of two equal-length vectors in [-1, 1].

    どちらかのノルムが 0 の場合は 0 を返す（スコアリングを定義域内に保つため）。
    長さが異なる場合のみ ``VectorLengthMismatchError`` を送出する。
    """

    if len(vec1) != len(vec2):
        raise VectorLengthMismatchError(len(vec1), len(vec2))

    dot = 0.0
    norm1 = 0.0
    norm2 = 0.0
    for a, b in zip(vec1, vec2):
        dot += a * b
        norm1 += a * a
        norm2 += b * b

    denominator = math.sqrt(norm1) * math.sqrt(norm2)
    if denominator == 0:
        return 0.0
    # 丸め誤差で ±1 をわずかに超えることがある
    return max(-1.0, min(1.0, dot / denominator))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def parse_embedding(raw: Optional[str | bytes]) -> Optional[List[float]]:
    """Deserialize a stored embedding.

    空文字・不正な JSON・数値以外(非有限値を含む)の要素はいずれも None を返す。
    """

    if not raw:
        return None
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, list):
        return None
    if not all(_is_number(v) for v in data):
        return None
    return [float(v) for v in data]


def serialize_embedding(embedding: Sequence[float]) -> str:
    """Serialize a vector into the compact JSON form stored on cards."""

    return json.dumps([float(v) for v in embedding], separators=(",", ":"))
