"""Request-scoped dependencies shared by the routers."""

from __future__ import annotations

from fastapi import Request

from surveygraph.config import AppConfig, load_config


def get_config(request: Request) -> AppConfig:
    config = getattr(request.app.state, "config", None)
    if config is None:
        config = load_config()
        request.app.state.config = config
    return config


__all__ = ["get_config"]
