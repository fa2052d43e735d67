"""
Configuration loading for idgate.

The YAML file is read once at startup and turned into a frozen ``AuthConfig``
that is passed explicitly to the components that need it.

Example config::

    secret_key: change-me
    store: postgres
    postgres:
      host: localhost
      port: 5432
      database: idgate
      user: idgate
    auth:
      local:
        salt_rounds: 600000
        register_redirect: /welcome
      providers:
        github:
          client_id: abc123
          scope: [user:email, read:user]
          authorize_url: https://github.com/login/oauth/authorize
          access_token_url: https://github.com/login/oauth/access_token
          api_base_url: https://api.github.com/
          userinfo_endpoint: user
"""

import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from idgate.utils.env import read_secret

CONFIG_ENV_VAR = "IDGATE_CONFIG"

DEFAULT_FINISH_PATH = "/auth/finish"
DEFAULT_SALT_ROUNDS = 600000
STORE_BACKENDS = ("postgres", "memory")


class ConfigError(ValueError):
    """Raised when the configuration file is missing or malformed."""
    pass


@dataclass(frozen=True)
class ProviderSettings:
    """Options for one delegated-login provider type."""

    name: str
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    scope: Tuple[str, ...] = ()
    authorize_url: Optional[str] = None
    access_token_url: Optional[str] = None
    api_base_url: Optional[str] = None
    userinfo_endpoint: Optional[str] = None
    server_metadata_url: Optional[str] = None

    @classmethod
    def from_dict(cls, name: str, data: Optional[Dict[str, Any]]) -> 'ProviderSettings':
        data = data or {}
        scope = data.get('scope') or ()
        if isinstance(scope, str):
            scope = scope.split()
        client_secret = data.get('client_secret') or read_secret(
            f"{name.upper()}_CLIENT_SECRET", default=None
        )
        client_id = data.get('client_id') or read_secret(
            f"{name.upper()}_CLIENT_ID", default=None
        )
        return cls(
            name=name,
            client_id=client_id,
            client_secret=client_secret,
            scope=tuple(scope),
            authorize_url=data.get('authorize_url'),
            access_token_url=data.get('access_token_url'),
            api_base_url=data.get('api_base_url'),
            userinfo_endpoint=data.get('userinfo_endpoint'),
            server_metadata_url=data.get('server_metadata_url'),
        )


@dataclass(frozen=True)
class LocalAuthSettings:
    """Local email+password settings."""

    salt_rounds: int = DEFAULT_SALT_ROUNDS
    register_redirect: Optional[str] = None
    login_redirect: Optional[str] = None

    @property
    def register_target(self) -> str:
        return self.register_redirect or DEFAULT_FINISH_PATH

    @property
    def login_target(self) -> str:
        return self.login_redirect or DEFAULT_FINISH_PATH


@dataclass(frozen=True)
class AuthConfig:
    """Immutable application configuration."""

    secret_key: str = ""
    store: str = "memory"
    postgres: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    pool_min_conn: int = 1
    pool_max_conn: int = 10
    hash_workers: int = 4
    local: LocalAuthSettings = field(default_factory=LocalAuthSettings)
    providers: Mapping[str, ProviderSettings] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'AuthConfig':
        """Build an AuthConfig from a parsed YAML document."""
        data = data or {}
        auth = data.get('auth') or {}
        local = auth.get('local') or {}
        pool = data.get('pool') or {}

        store = data.get('store', 'memory')
        if store not in STORE_BACKENDS:
            raise ConfigError(f"Unknown store backend '{store}', expected one of {STORE_BACKENDS}")

        salt_rounds = local.get('salt_rounds', DEFAULT_SALT_ROUNDS)
        if not isinstance(salt_rounds, int) or salt_rounds < 1:
            raise ConfigError(f"auth.local.salt_rounds must be a positive integer, got {salt_rounds!r}")

        providers = {
            name: ProviderSettings.from_dict(name, options)
            for name, options in (auth.get('providers') or {}).items()
        }

        postgres = dict(data.get('postgres') or {})
        if 'password' not in postgres:
            password = read_secret('PG_PASSWORD', default=None)
            if password:
                postgres['password'] = password

        return cls(
            secret_key=data.get('secret_key') or read_secret('IDGATE_SECRET_KEY'),
            store=store,
            postgres=MappingProxyType(postgres),
            pool_min_conn=pool.get('min_conn', 1),
            pool_max_conn=pool.get('max_conn', 10),
            hash_workers=auth.get('hash_workers', 4),
            local=LocalAuthSettings(
                salt_rounds=salt_rounds,
                register_redirect=local.get('register_redirect'),
                login_redirect=local.get('login_redirect'),
            ),
            providers=MappingProxyType(providers),
        )


def load_auth_config(path: Optional[str] = None) -> AuthConfig:
    """
    Load the YAML configuration file.

    Args:
        path: Path to the YAML file. Falls back to $IDGATE_CONFIG.

    Returns:
        Frozen AuthConfig

    Raises:
        ConfigError: If no path is given or the file does not exist
    """
    path = path or os.environ.get(CONFIG_ENV_VAR)
    if not path:
        raise ConfigError(f"No config file given (use --config or set {CONFIG_ENV_VAR})")
    if not os.path.exists(path):
        raise ConfigError(f"Config file not found: {path}")

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    return AuthConfig.from_dict(data)
