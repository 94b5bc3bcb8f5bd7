"""埋め込みベクトル生成用のプロバイダを管理するモジュール。

スケジューラは埋め込みを「あれば使う」だけなので、生成に失敗しても
カード作成や出題を止めない。失敗はログに残して None を返す。
"""

from __future__ import annotations

from typing import Any, List, Optional

from openai import OpenAI

from ..config import settings
from ..logging import logger
from . import _get_provider_cache


class SimpleEmbeddingFunction:
    """決定的な軽量埋め込み。テストやオフライン開発用。"""

    def __init__(self, dims: int = 8) -> None:
        self.dims = max(1, dims)

    def __call__(self, input: Any) -> List[List[float]]:
        texts: List[str] = input if isinstance(input, list) else [str(input)]
        vectors: List[List[float]] = []
        for text in texts:
            vec = [0.0] * self.dims
            for idx, ch in enumerate(text):
                vec[idx % self.dims] += float(ord(ch))
            norm = sum(v * v for v in vec) ** 0.5 or 1.0
            vectors.append([v / norm for v in vec])
        return vectors

    def name(self) -> str:
        return "simple"


class OpenAIEmbeddingFunction:
    """OpenAI Embeddings API の薄いラッパー。"""

    batch_size = 64

    def __init__(self, api_key: str, model: str, timeout_sec: float) -> None:
        self._client = OpenAI(api_key=api_key, timeout=timeout_sec, max_retries=1)
        self.model = model

    def __call__(self, input: Any) -> List[List[float]]:
        texts: List[str] = input if isinstance(input, list) else [str(input)]
        out: List[List[float]] = []
        for idx in range(0, len(texts), self.batch_size):
            chunk = texts[idx : idx + self.batch_size]
            resp = self._client.embeddings.create(model=self.model, input=chunk)
            out.extend([list(data.embedding) for data in resp.data])
        return out

    def name(self) -> str:
        return f"openai:{self.model}"


def get_embedding_provider() -> Any | None:
    """設定値を基に埋め込みクライアントを返す。利用不可なら None。"""

    provider = settings.embedding_provider
    cache = _get_provider_cache()
    key = f"{provider}:{settings.embedding_model}"
    if key in cache:
        return cache[key]

    instance: Any | None
    if provider == "simple":
        instance = SimpleEmbeddingFunction(dims=settings.simple_embedding_dims)
    elif provider == "openai":
        if not settings.openai_api_key:
            if settings.strict_mode:
                raise RuntimeError("OPENAI_API_KEY is required for EMBEDDING_PROVIDER=openai (strict mode)")
            logger.info("embedding_provider_disabled", provider=provider, reason="missing_api_key")
            instance = None
        else:
            instance = OpenAIEmbeddingFunction(
                api_key=settings.openai_api_key,
                model=settings.embedding_model,
                timeout_sec=max(1.0, settings.embedding_timeout_ms / 1000),
            )
    else:
        instance = None

    cache[key] = instance
    return instance


def embed_text(text: str) -> Optional[List[float]]:
    """Embed a single text; returns None when no provider is configured or the call fails."""

    provider = get_embedding_provider()
    if provider is None:
        return None
    try:
        vectors = provider([text])
    except Exception as exc:
        logger.warning(
            "embedding_failed",
            provider=provider.name(),
            error_type=exc.__class__.__name__,
            error=str(exc)[:200],
        )
        return None
    if not vectors or not vectors[0]:
        return None
    return [float(v) for v in vectors[0]]
