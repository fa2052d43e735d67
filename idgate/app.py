from typing import Optional

from flask import Flask, redirect, url_for

from idgate.auth.integration import setup_auth
from idgate.utils.config import AuthConfig, ConfigError, load_auth_config
from idgate.utils.logging import get_logger

logger = get_logger(__name__)


def create_app(config: Optional[AuthConfig] = None, **setup_kwargs) -> Flask:
    """
    Flask application factory.

    Args:
        config: Application configuration; loaded from $IDGATE_CONFIG if omitted
        **setup_kwargs: Passed through to setup_auth (store, capabilities)
    """
    config = config or load_auth_config()
    if not config.secret_key:
        raise ConfigError("secret_key is required (set it in the config or IDGATE_SECRET_KEY)")

    app = Flask(__name__)
    app.secret_key = config.secret_key
    app.config['IDGATE'] = config

    setup_auth(app, config, **setup_kwargs)

    @app.route('/')
    def index():
        return redirect(url_for('auth.finish'))

    return app
