"""Pytest configuration: deterministic embeddings and a throwaway database."""

import os
import sys
import tempfile
from pathlib import Path

_BACKEND_ROOT = Path(__file__).resolve().parents[1] / "apps" / "backend"
if str(_BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(_BACKEND_ROOT))

# OpenAI を呼ばずに済むよう、決定的な簡易埋め込みを既定にする。
# モジュール読み込み時にストアが作られるため、DB も一時ディレクトリへ逃がす。
os.environ.setdefault("EMBEDDING_PROVIDER", "simple")
os.environ.setdefault("STRICT_MODE", "false")
os.environ.setdefault(
    "LEARNCURVE_DB_PATH",
    str(Path(tempfile.mkdtemp(prefix="learncurve-tests-")) / "store.sqlite3"),
)
