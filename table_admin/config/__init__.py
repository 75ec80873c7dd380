from .loader import AdminConfig, ConfigError, load_config

__all__ = [
    "AdminConfig",
    "ConfigError",
    "load_config",
]
