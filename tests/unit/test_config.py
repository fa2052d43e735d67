"""
Unit tests for configuration loading and secrets.
"""
import pytest

from idgate.utils.config import (
    CONFIG_ENV_VAR,
    DEFAULT_SALT_ROUNDS,
    AuthConfig,
    ConfigError,
    LocalAuthSettings,
    load_auth_config,
)
from idgate.utils.env import read_secret

CONFIG_YAML = """
secret_key: from-file
store: postgres
postgres:
  host: db
  port: 5432
  database: idgate
  user: idgate
pool:
  max_conn: 4
auth:
  local:
    salt_rounds: 1000
    login_redirect: /home
  providers:
    github:
      client_id: abc123
      scope: user:email read:user
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ('IDGATE_SECRET_KEY', 'PG_PASSWORD', 'GITHUB_CLIENT_ID', 'GITHUB_CLIENT_SECRET', CONFIG_ENV_VAR):
        monkeypatch.delenv(name, raising=False)
        monkeypatch.delenv(f'{name}_FILE', raising=False)


class TestReadSecret:
    """Tests for read_secret."""

    def test_env_value(self, monkeypatch):
        monkeypatch.setenv('PG_PASSWORD', ' hunter2 \n')
        assert read_secret('PG_PASSWORD') == 'hunter2'

    def test_file_wins_over_env(self, monkeypatch, tmp_path):
        secret_file = tmp_path / 'pg_password'
        secret_file.write_text('from-file\n')
        monkeypatch.setenv('PG_PASSWORD', 'from-env')
        monkeypatch.setenv('PG_PASSWORD_FILE', str(secret_file))

        assert read_secret('PG_PASSWORD') == 'from-file'

    def test_default(self):
        assert read_secret('PG_PASSWORD') == ''
        assert read_secret('PG_PASSWORD', default=None) is None


class TestAuthConfig:
    """Tests for AuthConfig.from_dict."""

    def test_defaults(self):
        config = AuthConfig.from_dict({})

        assert config.store == 'memory'
        assert config.secret_key == ''
        assert config.local.salt_rounds == DEFAULT_SALT_ROUNDS
        assert config.local.login_target == '/auth/finish'
        assert config.local.register_target == '/auth/finish'
        assert dict(config.providers) == {}

    def test_unknown_store(self):
        with pytest.raises(ConfigError):
            AuthConfig.from_dict({'store': 'mongo'})

    @pytest.mark.parametrize('salt_rounds', [0, -5, 'many'])
    def test_bad_salt_rounds(self, salt_rounds):
        with pytest.raises(ConfigError):
            AuthConfig.from_dict({'auth': {'local': {'salt_rounds': salt_rounds}}})

    def test_provider_secret_from_env(self, monkeypatch):
        monkeypatch.setenv('GITHUB_CLIENT_SECRET', 'shh')

        config = AuthConfig.from_dict({
            'auth': {'providers': {'github': {'client_id': 'abc', 'scope': ['user:email']}}},
        })

        github = config.providers['github']
        assert github.client_id == 'abc'
        assert github.client_secret == 'shh'
        assert github.scope == ('user:email',)

    def test_provider_without_options(self):
        config = AuthConfig.from_dict({'auth': {'providers': {'gitlab': None}}})

        gitlab = config.providers['gitlab']
        assert gitlab.client_id is None
        assert gitlab.scope == ()

    def test_secrets_from_env(self, monkeypatch):
        monkeypatch.setenv('IDGATE_SECRET_KEY', 'env-key')
        monkeypatch.setenv('PG_PASSWORD', 'pg-pass')

        config = AuthConfig.from_dict({'store': 'postgres', 'postgres': {'host': 'db'}})

        assert config.secret_key == 'env-key'
        assert config.postgres['password'] == 'pg-pass'

    def test_config_is_immutable(self):
        config = AuthConfig.from_dict({'auth': {'providers': {'github': {}}}})

        with pytest.raises(TypeError):
            config.providers['gitlab'] = None
        with pytest.raises(AttributeError):
            config.store = 'postgres'

    def test_local_settings_targets(self):
        local = LocalAuthSettings(register_redirect='/welcome')

        assert local.register_target == '/welcome'
        assert local.login_target == '/auth/finish'


class TestLoadAuthConfig:
    """Tests for load_auth_config."""

    def test_load_from_path(self, tmp_path):
        path = tmp_path / 'idgate.yaml'
        path.write_text(CONFIG_YAML)

        config = load_auth_config(str(path))

        assert config.secret_key == 'from-file'
        assert config.store == 'postgres'
        assert config.postgres['host'] == 'db'
        assert config.pool_max_conn == 4
        assert config.local.salt_rounds == 1000
        assert config.local.login_target == '/home'
        assert config.providers['github'].scope == ('user:email', 'read:user')

    def test_load_from_env_var(self, tmp_path, monkeypatch):
        path = tmp_path / 'idgate.yaml'
        path.write_text(CONFIG_YAML)
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

        assert load_auth_config().secret_key == 'from-file'

    def test_no_path(self):
        with pytest.raises(ConfigError):
            load_auth_config()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_auth_config(str(tmp_path / 'missing.yaml'))

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'empty.yaml'
        path.write_text('')

        assert load_auth_config(str(path)).store == 'memory'
