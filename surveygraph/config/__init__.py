"""Application configuration and central error mapping."""

from surveygraph.config.settings import AppConfig, load_config

__all__ = ["AppConfig", "load_config"]
