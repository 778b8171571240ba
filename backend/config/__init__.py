"""Configuration module for the reservations backend."""
from .settings import AppConfig, load_settings

__all__ = ["AppConfig", "load_settings"]
