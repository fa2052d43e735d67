"""
Auth integration helpers.

Builds the auth components from an AuthConfig and installs them on a Flask
application.
"""

from typing import Mapping, Optional

from flask import Flask

from idgate.auth.decorators import EXTENSION_KEY
from idgate.auth.passwords import PasswordHasher
from idgate.auth.postgres_store import PostgresCredentialStore
from idgate.auth.providers import ProviderCapability, ProviderRegistry, create_oauth_capabilities
from idgate.auth.routes import auth_bp
from idgate.auth.service import AuthOrchestrator
from idgate.auth.store import CredentialStore, MemoryCredentialStore
from idgate.utils.config import AuthConfig
from idgate.utils.connection_pool import ConnectionPool
from idgate.utils.logging import get_logger

logger = get_logger(__name__)


def build_store(config: AuthConfig) -> CredentialStore:
    """Create the credential store selected by ``config.store``."""
    if config.store == 'postgres':
        pool = ConnectionPool(
            config.postgres,
            min_conn=config.pool_min_conn,
            max_conn=config.pool_max_conn,
        )
        return PostgresCredentialStore(pool)

    logger.warning("Using in-memory credential store; accounts are lost on restart")
    return MemoryCredentialStore()


def build_orchestrator(
    config: AuthConfig,
    *,
    store: Optional[CredentialStore] = None,
    capabilities: Optional[Mapping[str, ProviderCapability]] = None,
) -> AuthOrchestrator:
    """
    Wire store, hasher and provider registry into an AuthOrchestrator.

    Args:
        config: Application configuration
        store: Credential store to use instead of the configured one
        capabilities: Provider capabilities keyed by type name
    """
    store = store or build_store(config)
    hasher = PasswordHasher(config.local.salt_rounds, max_workers=config.hash_workers)
    registry = ProviderRegistry(config.providers, capabilities)
    return AuthOrchestrator(store, hasher, registry, config.local)


def setup_auth(
    app: Flask,
    config: AuthConfig,
    *,
    store: Optional[CredentialStore] = None,
    capabilities: Optional[Mapping[str, ProviderCapability]] = None,
) -> AuthOrchestrator:
    """
    Initialize and configure authentication for a Flask app.

    This sets up:
    1. The credential store (PostgreSQL or memory)
    2. Authlib OAuth clients for every configured provider
    3. The AuthOrchestrator, reachable through ``app.extensions['idgate']``
    4. The auth blueprint at /auth/*

    Args:
        app: Flask application
        config: Application configuration
        store: Optional credential store override
        capabilities: Optional provider capabilities override; by default
            Authlib clients are registered from ``config.providers``

    Returns:
        Configured AuthOrchestrator
    """
    if capabilities is None:
        capabilities = create_oauth_capabilities(app, config.providers)

    orchestrator = build_orchestrator(config, store=store, capabilities=capabilities)
    app.extensions[EXTENSION_KEY] = orchestrator

    app.register_blueprint(auth_bp)
    logger.info(f"Auth blueprint registered at /auth/* (providers: {orchestrator.registry.types})")

    return orchestrator
