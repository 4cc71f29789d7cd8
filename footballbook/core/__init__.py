"""Configuration and process-level primitives"""

from .config import Settings, check_signing_key, load_settings
from .locks import acquire_lock

__all__ = [
    "Settings",
    "check_signing_key",
    "load_settings",
    "acquire_lock",
]
