"""Current-user dependency shared by the modular routers."""
from __future__ import annotations

from typing import Any, Optional

from fastapi import Header, Request

try:
    from backend import app_context
except ModuleNotFoundError as exc:  # pragma: no cover - fallback for running from backend/
    if exc.name != "backend":
        raise
    import app_context  # type: ignore[no-redef]


def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> Any:
    # Same cookie name that login and register set.
    cookie_name = app_context.get_config().session_cookie_name
    return app_context.get_current_user(
        authorization=authorization,
        session_token=request.cookies.get(cookie_name),
    )
