"""
idgate utilities: configuration, logging, secrets and PostgreSQL pooling.
"""

from idgate.utils.config import (
    AuthConfig,
    ConfigError,
    LocalAuthSettings,
    ProviderSettings,
    load_auth_config,
)
from idgate.utils.connection_pool import ConnectionPool, ConnectionPoolError
from idgate.utils.env import read_secret
from idgate.utils.logging import get_logger, setup_logging

__all__ = [
    # Config
    'AuthConfig',
    'ConfigError',
    'LocalAuthSettings',
    'ProviderSettings',
    'load_auth_config',
    # Connection pool
    'ConnectionPool',
    'ConnectionPoolError',
    # Misc
    'read_secret',
    'get_logger',
    'setup_logging',
]
