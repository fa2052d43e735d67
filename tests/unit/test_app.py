"""
Unit tests for the Flask application factory.
"""
import pytest

from idgate.app import create_app
from idgate.utils.config import AuthConfig, ConfigError


def test_create_app_requires_secret_key(monkeypatch):
    monkeypatch.delenv('IDGATE_SECRET_KEY', raising=False)

    with pytest.raises(ConfigError):
        create_app(AuthConfig.from_dict({'store': 'memory'}), capabilities={})


def test_create_app_wires_auth(auth_config, store, github):
    app = create_app(auth_config, store=store, capabilities={'github': github})
    client = app.test_client()

    assert app.config['IDGATE'] is auth_config
    assert app.extensions['idgate'].store is store

    response = client.get('/')
    assert response.status_code == 302
    assert response.headers['Location'].endswith('/auth/finish')
