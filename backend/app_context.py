"""Shared application context for reusable dependencies."""
from __future__ import annotations

from typing import Any, Callable, Optional

_config: Optional[Any] = None
_get_conn: Optional[Callable[[], Any]] = None
_get_current_user: Optional[Callable[..., Any]] = None


def configure(
    *,
    config: Any,
    get_conn: Callable[[], Any],
    get_current_user: Callable[..., Any],
) -> None:
    """Register application-wide dependencies required by modular routers."""

    global _config
    global _get_conn
    global _get_current_user

    _config = config
    _get_conn = get_conn
    _get_current_user = get_current_user


def _require(value: Optional[Any], name: str) -> Any:
    if value is None:
        raise RuntimeError(f"Application context has not been configured yet: {name}")
    return value


def get_config() -> Any:
    return _require(_config, "config")


def get_conn() -> Any:
    conn_factory = _require(_get_conn, "get_conn")
    return conn_factory()


def get_current_user(*args: Any, **kwargs: Any) -> Any:
    dependency = _require(_get_current_user, "get_current_user")
    return dependency(*args, **kwargs)
