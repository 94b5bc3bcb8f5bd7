from typing import Annotated

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources.types import NoDecode


DEFAULT_DB_PATH = ".data/learncurve.sqlite3"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    環境変数から読み込まれるアプリ設定クラス。
    - environment: 実行環境（development/staging/production など）
    - embedding_provider: カード埋め込みの生成元（openai/simple/none）
    - new_cards_per_day: 1 日に出題する新規カードの上限
    """

    environment: str = Field(
        default="development",
        description="Runtime environment / 実行環境",
    )
    embedding_provider: str = Field(
        default="openai",
        description="Embedding service provider (openai/simple/none) / 利用する埋め込みプロバイダ",
    )
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model name / 埋め込みモデル名",
    )
    embedding_timeout_ms: int = Field(
        default=10000,
        description="Timeout for a single embedding request (ms) / 埋め込み生成のタイムアウト(ms)",
    )
    simple_embedding_dims: int = Field(
        default=8,
        description="Dimensionality of the deterministic fallback embedding / 簡易埋め込みの次元数",
    )

    # --- API Keys ---
    openai_api_key: str | None = Field(default=None, description="OpenAI API Key")

    # --- データ永続化設定 ---
    learncurve_db_path: str = Field(
        default=DEFAULT_DB_PATH,
        description="Path to SQLite database for cards and review state / カード・復習状態用SQLite DBパス",
        validation_alias=AliasChoices("learncurve_db_path", "db_path"),
    )

    # --- 出題制御 ---
    new_cards_per_day: int = Field(
        default=20,
        ge=0,
        description="Max new (stage 0) cards merged into today's pool / 本日の新規カード上限",
    )
    review_default_limit: int = Field(
        default=1,
        ge=1,
        description="Default number of cards returned by /api/review/today / 既定の出題数",
    )
    review_max_limit: int = Field(
        default=100,
        ge=1,
        description="Upper bound of the limit query parameter / 出題数の上限",
    )
    day_boundary_utc_offset_hours: int = Field(
        default=9,
        ge=-12,
        le=14,
        description="UTC offset used to decide 'today' (JST by default) / 「今日」の判定に使う UTC オフセット",
    )
    similar_default_limit: int = Field(default=10, ge=1, description="Default size of similar-card lists")
    similar_max_limit: int = Field(default=20, ge=1, description="Max size of similar-card lists")

    allowed_cors_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(),
        description=(
            "Comma separated CORS origins / CORS で許可するオリジンのカンマ区切り一覧"
        ),
        validation_alias=AliasChoices("allowed_cors_origins", "cors_allowed_origins"),
    )

    # --- Strict mode ---
    strict_mode: bool = Field(
        default=False,
        description="Fail fast on missing/invalid embedding configuration",
    )

    # Pydantic v2 settings config
    # - env_file: .env を読み込む
    # - extra: .env に存在する未使用キーを無視
    # - case_sensitive: 環境変数キーの大小文字を区別しない
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("allowed_cors_origins", mode="before")
    @classmethod
    def _normalise_allowed_cors_origins(
        cls, raw_origins: object
    ) -> tuple[str, ...] | object:  # pragma: no cover - pydantic handles typing
        """Convert environment input into a deduplicated tuple of origins.

        CORS 設定を `.env` で管理するときに空白や重複が混ざりやすいため、
        FastAPI へ渡す前にトリムと重複排除を行って配列へ正規化する。
        """

        if raw_origins is None:
            candidates: list[str] = []
        elif isinstance(raw_origins, str):
            candidates = raw_origins.split(",")
        else:
            try:
                candidates = list(raw_origins)
            except TypeError:
                return raw_origins

        normalised: list[str] = []
        seen: set[str] = set()
        for candidate in candidates:
            if not isinstance(candidate, str):
                continue
            trimmed = candidate.strip()
            if not trimmed or trimmed in seen:
                continue
            seen.add(trimmed)
            normalised.append(trimmed)

        return tuple(normalised)

    @field_validator("embedding_provider", mode="after")
    @classmethod
    def _normalise_embedding_provider(cls, value: str) -> str:
        provider = (value or "").strip().lower()
        if provider not in {"openai", "simple", "none"}:
            raise ValueError("EMBEDDING_PROVIDER must be one of: openai, simple, none")
        return provider


settings = Settings()
