import sys

import click

from idgate.auth.exceptions import ValidationError
from idgate.auth.integration import build_orchestrator, build_store
from idgate.auth.validation import normalize_email
from idgate.utils.config import ConfigError, load_auth_config
from idgate.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)

config_option = click.option(
    '--config', '-c', 'config_path', type=str, required=False,
    help="Path to the idgate .yaml configuration (default: $IDGATE_CONFIG)",
)
verbosity_option = click.option(
    '--verbosity', '-v', type=int, default=3, help="Logging verbosity level (0-4)",
)


def _load(config_path):
    try:
        return load_auth_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e))


@click.group()
def cli():
    pass


@click.command('init-db')
@config_option
@verbosity_option
def init_db(config_path: str, verbosity: int):
    """Create the users and authentications tables."""
    setup_logging(verbosity)
    config = _load(config_path)
    if config.store != 'postgres':
        raise click.ClickException("init-db needs store: postgres in the config")

    store = build_store(config)
    store.create_tables()
    click.echo("Auth tables created successfully!")


@click.command('serve')
@config_option
@verbosity_option
@click.option('--host', type=str, default='127.0.0.1', help="Interface to bind")
@click.option('--port', '-p', type=int, default=5000, help="Port to listen on")
@click.option('--debug', is_flag=True, help="Run with the Flask debugger")
def serve(config_path: str, verbosity: int, host: str, port: int, debug: bool):
    """Run the development server."""
    from idgate.app import create_app

    setup_logging(verbosity)
    try:
        app = create_app(_load(config_path))
    except ConfigError as e:
        raise click.ClickException(str(e))
    app.run(host=host, port=port, debug=debug)


@click.command('create-user')
@config_option
@verbosity_option
@click.option('--email', '-e', type=str, required=True, help="Email of the new user")
@click.option('--first-name', type=str, default=None)
@click.option('--last-name', type=str, default=None)
@click.password_option('--password', help="Password (prompted when omitted)")
def create_user(config_path: str, verbosity: int, email: str, first_name: str, last_name: str, password: str):
    """Register a local user from the terminal."""
    setup_logging(verbosity)
    config = _load(config_path)
    if config.store == 'memory':
        logger.warning("store is 'memory'; the account will not outlive this command")

    try:
        email = normalize_email(email)
    except ValidationError as e:
        raise click.BadParameter(str(e), param_hint='--email')

    orchestrator = build_orchestrator(config, capabilities={})
    result = orchestrator.register_local(
        {'email': email, 'first_name': first_name, 'last_name': last_name},
        password,
    )
    if not result.ok:
        for error in result.errors:
            click.echo(f"{error.field or 'error'}: {error.message}", err=True)
        sys.exit(1)

    logger.info("Account created")
    click.echo(f"Created user {result.user.email} ({result.user.id})")


cli.add_command(init_db)
cli.add_command(serve)
cli.add_command(create_user)


def main():
    cli()


if __name__ == '__main__':
    main()
