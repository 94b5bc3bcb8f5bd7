"""Request-scoped user identity.

認証はこのサービスの責務外。前段（API ゲートウェイ等）が付与する
`X-User-Id` ヘッダをそのまま利用者 ID として扱い、未指定なら既定ユーザーに寄せる。
"""

from fastapi import Header, HTTPException

DEFAULT_USER_ID = "default"
_MAX_USER_ID_LENGTH = 128


def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    user_id = (x_user_id or "").strip()
    if not user_id:
        return DEFAULT_USER_ID
    if len(user_id) > _MAX_USER_ID_LENGTH:
        raise HTTPException(status_code=400, detail="X-User-Id is too long")
    return user_id
