"""nodewatch configuration module"""

from .base import (
    DEFAULT_ENDPOINTS,
    MonitorConfig,
    MonitorSettings,
    NodeConfig,
    ProviderKind,
    load_config,
    parse_config,
)
from .logging import configure_logging, log_error

__all__ = [
    'DEFAULT_ENDPOINTS',
    'MonitorConfig',
    'MonitorSettings',
    'NodeConfig',
    'ProviderKind',
    'load_config',
    'parse_config',
    'configure_logging',
    'log_error',
]
