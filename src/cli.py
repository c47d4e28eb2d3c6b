"""
Command-line interface for the GitHub session.

Usage:
    ghalerts login              # Sign in through the browser
    ghalerts login --no-browser # Print the URL instead of opening it
    ghalerts status             # Show who is signed in
    ghalerts set-token          # Store a personal access token
    ghalerts token              # Print the stored token (for scripts)
    ghalerts logout             # Forget the stored session

Prerequisites for login:
    export GITHUB_CLIENT_ID="your_client_id"
    export GITHUB_CLIENT_SECRET="your_client_secret"
"""

import json
import logging
import sys
from typing import Optional

import click

from src.oauth.config import GitHubOAuthConfig
from src.oauth.exceptions import (
    AuthError,
    ConfigStoreError,
    ConfigurationError,
    DeniedError,
    InvalidTokenError,
    NetworkError,
    PortUnavailableError,
)
from src.oauth.session_manager import SessionManager

logger = logging.getLogger(__name__)


def print_error(message: str) -> None:
    """Print error message to stderr."""
    click.secho(f"Error: {message}", fg="red", err=True)


def print_success(message: str) -> None:
    """Print success message."""
    click.secho(message, fg="green")


def print_warning(message: str) -> None:
    """Print warning message."""
    click.secho(f"Warning: {message}", fg="yellow")


def get_manager(ctx: click.Context) -> SessionManager:
    """Get the SessionManager from context, creating it on first use."""
    if ctx.obj.get("manager") is None:
        try:
            config = GitHubOAuthConfig.from_env(config_file=ctx.obj.get("config_file"))
        except ConfigurationError as e:
            print_error(str(e))
            sys.exit(1)
        ctx.obj["manager"] = SessionManager(config)
    return ctx.obj["manager"]


@click.group()
@click.option(
    "--config-file",
    type=click.Path(dir_okay=False),
    envvar="GHALERTS_CONFIG_FILE",
    help="Path of the application config file",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[str], verbose: bool) -> None:
    """
    GitHub Security Alerts - manage the GitHub sign-in.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj.setdefault("manager", None)
    ctx.obj["config_file"] = config_file


@cli.command()
@click.option("--no-browser", is_flag=True, help="Print the URL instead of opening it")
@click.option("--timeout", type=float, default=None, help="Seconds to wait for the redirect")
@click.pass_context
def login(ctx: click.Context, no_browser: bool, timeout: Optional[float]) -> None:
    """
    Sign in with GitHub through the browser.

    Example: ghalerts login --timeout 120
    """
    manager = get_manager(ctx)

    try:
        url = manager.start_acquisition()
    except PortUnavailableError as e:
        print_error(str(e))
        click.echo("Close the program using that port or set GITHUB_CALLBACK_PORT")
        sys.exit(1)
    except AuthError as e:
        print_error(str(e))
        sys.exit(1)

    click.echo("Authorize the application by visiting:")
    click.echo(url)
    if not no_browser:
        click.launch(url)
    click.echo("Waiting for the browser redirect...")

    try:
        session = manager.complete_acquisition(timeout)
    except DeniedError as e:
        print_warning(f"Sign-in was not approved ({e.reason})")
        sys.exit(1)
    except NetworkError as e:
        print_error(f"Could not reach GitHub: {e}")
        sys.exit(1)
    except AuthError as e:
        print_error(str(e))
        sys.exit(1)

    # verify() leaves the stored token in place whatever the answer.
    identity = manager.verifier.verify(session.access_token)
    if identity is not None:
        print_success(f"Signed in as {identity.login}")
    else:
        print_warning(
            "Signed in, but GitHub did not confirm the new token yet. "
            "Run 'ghalerts status' to check again."
        )


@cli.command()
@click.option("--json", "output_json", is_flag=True, help="JSON output")
@click.pass_context
def status(ctx: click.Context, output_json: bool) -> None:
    """
    Show the current sign-in status.

    Exits with status 1 when not signed in.
    """
    manager = get_manager(ctx)
    result = manager.get_status()

    if output_json:
        click.echo(json.dumps(result))
    elif result["authenticated"]:
        print_success(f"Signed in as {result['username']}")
    else:
        click.echo("Not signed in")

    if not result["authenticated"]:
        sys.exit(1)


@cli.command("set-token")
@click.argument("token", required=False)
@click.pass_context
def set_token(ctx: click.Context, token: Optional[str]) -> None:
    """
    Store a personal access token instead of signing in.

    The token is checked against GitHub before it is saved. Leave TOKEN
    out to be prompted for it without echo.
    """
    manager = get_manager(ctx)
    if token is None:
        token = click.prompt("GitHub token", hide_input=True)

    try:
        identity = manager.set_session_from_token(token)
    except InvalidTokenError as e:
        print_error(str(e))
        sys.exit(1)
    except ConfigStoreError as e:
        print_error(str(e))
        sys.exit(1)

    print_success(f"Token saved for {identity.login}")


@cli.command()
@click.pass_context
def token(ctx: click.Context) -> None:
    """Print the stored access token."""
    manager = get_manager(ctx)
    stored = manager.get_token()
    if stored is None:
        print_error("Not signed in")
        sys.exit(1)
    click.echo(stored)


@cli.command()
@click.pass_context
def logout(ctx: click.Context) -> None:
    """Forget the stored session and repository selection."""
    manager = get_manager(ctx)
    try:
        manager.revoke()
    except ConfigStoreError as e:
        print_error(str(e))
        sys.exit(1)
    print_success("Signed out")


def main() -> None:
    """CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
