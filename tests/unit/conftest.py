"""
Shared fixtures for idgate unit tests.
"""
import pytest
from flask import Flask
from werkzeug.utils import redirect

from idgate.auth.exceptions import ProviderError
from idgate.auth.integration import setup_auth
from idgate.auth.passwords import PasswordHasher
from idgate.auth.providers import DelegatedIdentity, ProviderCapability, ProviderRegistry
from idgate.auth.service import AuthOrchestrator
from idgate.auth.store import MemoryCredentialStore
from idgate.utils.config import AuthConfig

TEST_SALT_ROUNDS = 1000


class FakeProvider(ProviderCapability):
    """Provider capability that returns a canned identity or error."""

    def __init__(self, name, identity=None, error=None):
        self.name = name
        self.identity = identity
        self.error = error
        self.redirect_uri = None

    def authorize_redirect(self, redirect_uri):
        self.redirect_uri = redirect_uri
        return redirect(f"https://{self.name}.example/authorize")

    def complete(self):
        if self.error:
            raise ProviderError(self.error)
        return self.identity


@pytest.fixture
def auth_config():
    """Config with one provider; tiny hash cost to keep tests fast."""
    return AuthConfig.from_dict({
        'secret_key': 'test-secret-key',
        'store': 'memory',
        'auth': {
            'local': {'salt_rounds': TEST_SALT_ROUNDS},
            'providers': {
                'github': {
                    'client_id': 'client-id',
                    'client_secret': 'client-secret',
                    'scope': ['user:email', 'read:user'],
                },
            },
        },
    })


@pytest.fixture
def store():
    return MemoryCredentialStore()


@pytest.fixture
def hasher():
    hasher = PasswordHasher(TEST_SALT_ROUNDS, max_workers=2)
    yield hasher
    hasher.shutdown()


@pytest.fixture
def github():
    return FakeProvider('github', identity=DelegatedIdentity(
        profile={'subject': '42', 'email': None, 'first_name': 'Octo', 'last_name': 'Cat'},
        access_token='gho_token',
    ))


@pytest.fixture
def registry(auth_config, github):
    return ProviderRegistry(auth_config.providers, {'github': github})


@pytest.fixture
def orchestrator(store, hasher, registry, auth_config):
    return AuthOrchestrator(store, hasher, registry, auth_config.local)


@pytest.fixture
def flask_app(auth_config, store, github):
    """Flask test app with the auth blueprint and fake providers."""
    app = Flask(__name__)
    app.secret_key = auth_config.secret_key
    app.config['TESTING'] = True
    setup_auth(app, auth_config, store=store, capabilities={'github': github})
    return app


@pytest.fixture
def client(flask_app):
    return flask_app.test_client()
