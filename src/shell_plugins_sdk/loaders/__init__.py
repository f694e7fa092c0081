from .config import load_config
from .lock import dumps_locked_config, load_locked_config, write_locked_config

__all__ = [
    "dumps_locked_config",
    "load_config",
    "load_locked_config",
    "write_locked_config",
]
