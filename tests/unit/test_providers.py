"""
Unit tests for provider registry and Authlib-backed capabilities.
"""
from unittest.mock import MagicMock, patch

import pytest
import requests
from authlib.integrations.base_client import OAuthError

from idgate.auth.exceptions import ProviderError, UnknownProviderType
from idgate.auth.providers import (
    AuthlibProvider,
    ProviderRegistry,
    create_oauth_capabilities,
    normalize_profile,
)
from idgate.utils.config import ProviderSettings


@pytest.fixture
def github_settings():
    return ProviderSettings(
        name='github',
        client_id='client-id',
        client_secret='client-secret',
        scope=('user:email', 'read:user'),
        authorize_url='https://github.com/login/oauth/authorize',
        access_token_url='https://github.com/login/oauth/access_token',
        api_base_url='https://api.github.com/',
        userinfo_endpoint='user',
    )


@pytest.fixture
def google_settings():
    return ProviderSettings(
        name='google',
        client_id='google-id',
        client_secret='google-secret',
        scope=('openid', 'email', 'profile'),
        server_metadata_url='https://accounts.google.com/.well-known/openid-configuration',
    )


class TestNormalizeProfile:
    """Tests for normalize_profile."""

    def test_oidc_userinfo(self):
        profile = normalize_profile({
            'sub': 'abc',
            'email': 'ada@x.com',
            'given_name': 'Ada',
            'family_name': 'Lovelace',
        })

        assert profile == {
            'subject': 'abc',
            'email': 'ada@x.com',
            'first_name': 'Ada',
            'last_name': 'Lovelace',
        }

    def test_github_user_without_public_email(self):
        profile = normalize_profile({'id': 42, 'login': 'octocat', 'name': 'Octo Cat', 'email': None})

        assert profile['subject'] == '42'
        assert profile['email'] is None
        assert profile['first_name'] == 'Octo'
        assert profile['last_name'] == 'Cat'

    def test_missing_names(self):
        profile = normalize_profile({'id': 7})

        assert profile['first_name'] is None
        assert profile['last_name'] is None


class TestProviderRegistry:
    """Tests for ProviderRegistry lookups."""

    def test_types_and_scope(self, github_settings, google_settings):
        registry = ProviderRegistry({'google': google_settings, 'github': github_settings})

        assert registry.types == ['github', 'google']
        assert registry.is_known('github')
        assert not registry.is_known('myspace')
        assert registry.scope_for('github') == ['user:email', 'read:user']

    def test_scope_for_unknown_type_is_empty(self, github_settings):
        registry = ProviderRegistry({'github': github_settings})
        assert registry.scope_for('myspace') == []

    def test_settings_for_unknown_type(self, github_settings):
        registry = ProviderRegistry({'github': github_settings})

        with pytest.raises(UnknownProviderType) as exc_info:
            registry.settings_for('myspace')
        assert exc_info.value.provider_type == 'myspace'

    def test_capability_without_credentials(self, github_settings):
        registry = ProviderRegistry({'github': github_settings})

        with pytest.raises(ProviderError):
            registry.capability_for('github')

    def test_registry_is_read_only(self, github_settings):
        providers = {'github': github_settings}
        registry = ProviderRegistry(providers)
        providers['gitlab'] = ProviderSettings(name='gitlab')

        assert not registry.is_known('gitlab')


class TestAuthlibProvider:
    """Tests for AuthlibProvider against a mocked Authlib client."""

    def test_complete_with_id_token_userinfo(self, google_settings):
        client = MagicMock()
        client.authorize_access_token.return_value = {
            'access_token': 'ya29.token',
            'userinfo': {'sub': 'g-1', 'email': 'ada@x.com', 'given_name': 'Ada'},
        }

        identity = AuthlibProvider(client, google_settings).complete()

        assert identity.access_token == 'ya29.token'
        assert identity.profile['subject'] == 'g-1'
        assert identity.profile['email'] == 'ada@x.com'
        client.get.assert_not_called()

    def test_complete_fetches_user_endpoint(self, github_settings):
        client = MagicMock()
        token = {'access_token': 'gho_token'}
        client.authorize_access_token.return_value = token
        client.get.return_value.json.return_value = {'id': 42, 'name': 'Octo Cat', 'email': None}

        identity = AuthlibProvider(client, github_settings).complete()

        client.get.assert_called_once_with('user', token=token)
        assert identity.profile['subject'] == '42'
        assert identity.profile['email'] is None
        assert identity.access_token == 'gho_token'

    def test_complete_uses_oidc_userinfo_when_not_in_token(self, google_settings):
        client = MagicMock()
        client.authorize_access_token.return_value = {'access_token': 'ya29.token'}
        client.userinfo.return_value = {'sub': 'g-1', 'email': 'ada@x.com'}

        identity = AuthlibProvider(client, google_settings).complete()

        client.userinfo.assert_called_once()
        assert identity.profile['email'] == 'ada@x.com'

    def test_oauth_error_becomes_provider_error(self, github_settings):
        client = MagicMock()
        client.authorize_access_token.side_effect = OAuthError(error='access_denied')

        with pytest.raises(ProviderError):
            AuthlibProvider(client, github_settings).complete()

    def test_profile_request_failure_becomes_provider_error(self, github_settings):
        client = MagicMock()
        client.authorize_access_token.return_value = {'access_token': 'gho_token'}
        client.get.return_value.raise_for_status.side_effect = requests.HTTPError("502")

        with pytest.raises(ProviderError):
            AuthlibProvider(client, github_settings).complete()

    def test_authorize_redirect_delegates_to_client(self, github_settings):
        client = MagicMock()

        response = AuthlibProvider(client, github_settings).authorize_redirect('http://localhost/cb')

        client.authorize_redirect.assert_called_once_with('http://localhost/cb')
        assert response is client.authorize_redirect.return_value


class TestCreateOAuthCapabilities:
    """Tests for create_oauth_capabilities."""

    @patch('idgate.auth.providers.OAuth')
    def test_registers_configured_providers(self, mock_oauth, github_settings, google_settings):
        app = MagicMock()
        providers = {
            'github': github_settings,
            'google': google_settings,
            'gitlab': ProviderSettings(name='gitlab'),
        }

        capabilities = create_oauth_capabilities(app, providers)

        assert sorted(capabilities) == ['github', 'google']
        mock_oauth.assert_called_once_with(app)

        register = mock_oauth.return_value.register
        github_kwargs = register.call_args_list[0].kwargs
        assert github_kwargs['name'] == 'github'
        assert github_kwargs['client_kwargs'] == {'scope': 'user:email read:user'}
        assert github_kwargs['access_token_url'] == 'https://github.com/login/oauth/access_token'

        google_kwargs = register.call_args_list[1].kwargs
        assert google_kwargs['server_metadata_url'].endswith('openid-configuration')
        assert 'authorize_url' not in google_kwargs
