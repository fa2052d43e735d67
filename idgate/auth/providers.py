"""
Delegated-login providers.

``ProviderRegistry`` maps a provider type name to its configured options and
to the capability that runs the OAuth handshake. Clients are Authlib Flask
OAuth clients registered once at startup.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

import requests
from authlib.integrations.base_client import OAuthError
from authlib.integrations.flask_client import OAuth

from idgate.auth.exceptions import ProviderError, UnknownProviderType
from idgate.utils.config import ProviderSettings
from idgate.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DelegatedIdentity:
    """What a provider hands back after a successful callback."""

    profile: Dict[str, Any]
    access_token: Optional[str]


def normalize_profile(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Map an OIDC userinfo document or a provider user object onto
    subject / email / first_name / last_name.
    """
    subject = raw.get('sub', raw.get('id'))
    first_name = raw.get('given_name') or raw.get('first_name')
    last_name = raw.get('family_name') or raw.get('last_name')
    if not first_name and raw.get('name'):
        first_name, _, last_name = raw['name'].partition(' ')

    return {
        'subject': str(subject) if subject is not None else None,
        'email': raw.get('email') or None,
        'first_name': first_name or None,
        'last_name': last_name or None,
    }


class ProviderCapability(ABC):
    """Runs the redirect/callback handshake for one provider type."""

    name: str

    @abstractmethod
    def authorize_redirect(self, redirect_uri: str):
        """Return the response that sends the browser to the provider."""

    @abstractmethod
    def complete(self) -> DelegatedIdentity:
        """
        Exchange the callback request for a profile and access token.

        Raises:
            ProviderError: If the provider rejected or failed the handshake
        """


class AuthlibProvider(ProviderCapability):
    """ProviderCapability backed by an Authlib Flask OAuth client."""

    def __init__(self, client, settings: ProviderSettings):
        self.name = settings.name
        self._client = client
        self._settings = settings

    def authorize_redirect(self, redirect_uri: str):
        return self._client.authorize_redirect(redirect_uri)

    def complete(self) -> DelegatedIdentity:
        try:
            token = self._client.authorize_access_token()
            raw = token.get('userinfo') or self._fetch_userinfo(token)
        except OAuthError as e:
            logger.warning(f"{self.name} OAuth error: {e.error}")
            raise ProviderError(f"{self.name} authorization failed: {e.error}") from e
        except requests.RequestException as e:
            logger.warning(f"{self.name} profile request failed: {e}")
            raise ProviderError(f"{self.name} profile request failed") from e

        return DelegatedIdentity(
            profile=normalize_profile(raw),
            access_token=token.get('access_token'),
        )

    def _fetch_userinfo(self, token) -> Dict[str, Any]:
        if self._settings.server_metadata_url and not self._settings.userinfo_endpoint:
            return dict(self._client.userinfo(token=token))

        resp = self._client.get(self._settings.userinfo_endpoint or 'user', token=token)
        resp.raise_for_status()
        return resp.json()


class ProviderRegistry:
    """
    Immutable lookup from provider type name to settings and capability.
    """

    def __init__(
        self,
        providers: Mapping[str, ProviderSettings],
        capabilities: Optional[Mapping[str, ProviderCapability]] = None,
    ):
        self._providers = MappingProxyType(dict(providers))
        self._capabilities = MappingProxyType(dict(capabilities or {}))

    @property
    def types(self) -> List[str]:
        return sorted(self._providers)

    def is_known(self, provider_type: str) -> bool:
        return provider_type in self._providers

    def scope_for(self, provider_type: str) -> List[str]:
        """Configured scope for the type, or an empty list."""
        settings = self._providers.get(provider_type)
        return list(settings.scope) if settings else []

    def settings_for(self, provider_type: str) -> ProviderSettings:
        try:
            return self._providers[provider_type]
        except KeyError:
            raise UnknownProviderType(provider_type) from None

    def capability_for(self, provider_type: str) -> ProviderCapability:
        settings = self.settings_for(provider_type)
        capability = self._capabilities.get(settings.name)
        if capability is None:
            raise ProviderError(f"Provider '{provider_type}' has no client credentials configured")
        return capability


def create_oauth_capabilities(app, providers: Mapping[str, ProviderSettings]) -> Dict[str, ProviderCapability]:
    """
    Register an Authlib OAuth client for every provider that has credentials.

    Args:
        app: Flask application
        providers: Provider settings keyed by type name

    Returns:
        Capabilities keyed by type name; providers without credentials are
        skipped.
    """
    oauth = OAuth(app)
    capabilities: Dict[str, ProviderCapability] = {}

    for name, settings in providers.items():
        if not settings.client_id or not settings.client_secret:
            logger.info(f"{name} OAuth not configured (missing client_id or client_secret)")
            continue

        options: Dict[str, Any] = {
            'client_id': settings.client_id,
            'client_secret': settings.client_secret,
            'client_kwargs': {'scope': ' '.join(settings.scope)} if settings.scope else {},
        }
        if settings.server_metadata_url:
            options['server_metadata_url'] = settings.server_metadata_url
        else:
            options.update(
                authorize_url=settings.authorize_url,
                access_token_url=settings.access_token_url,
                api_base_url=settings.api_base_url,
            )

        client = oauth.register(name=name, **options)
        capabilities[name] = AuthlibProvider(client, settings)
        logger.info(f"{name} OAuth client configured")

    return capabilities
