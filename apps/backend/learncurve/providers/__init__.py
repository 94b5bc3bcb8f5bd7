"""プロバイダー向けの共有ステートと公開APIを管理するパッケージ。"""

from __future__ import annotations

from typing import Any

# 共有キャッシュ: 埋め込みプロバイダのインスタンスをリクエスト間で再利用する。
_PROVIDER_CACHE: dict[str, Any] = {}


def _get_provider_cache() -> dict[str, Any]:
    """内部モジュールにキャッシュへの参照を提供する。"""

    return _PROVIDER_CACHE


def reset_providers() -> None:
    """キャッシュ済みのプロバイダを破棄する。設定を差し替えるテストで使う。"""

    _PROVIDER_CACHE.clear()


from .embeddings import embed_text, get_embedding_provider  # noqa: E402

__all__ = [
    "embed_text",
    "get_embedding_provider",
    "reset_providers",
]
