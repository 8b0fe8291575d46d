"""
Command-line interface for photosync.

Provides CLI commands for logging in to a PhotoSync server, backing up the
local media library, restoring server files and cleaning up duplicates.

Usage:
    # Show help
    photosync --help

    # Log in (prompts for email and password)
    photosync login --server-type local --host 192.168.1.20

    # Upload what the server is missing
    photosync backup
    photosync backup --dry-run

    # Download what the library is missing
    photosync restore

    # Remove duplicate local copies
    photosync clean-duplicates --dry-run
"""

import sys
from pathlib import Path
from typing import Any, NoReturn, Optional

import click

from photosync import __version__
from photosync.api.server_api import AuthenticationRequiredError, ServerAPIError
from photosync.auth.identity import IdentityError
from photosync.auth.session import Session, SessionError, SessionManager
from photosync.cli.formatters import (
    ProgressBar,
    show_backup_plan,
    show_duplicate_groups,
    show_restore_plan,
    style_outcome,
)
from photosync.config.generator import save_config_file
from photosync.config.loader import DEFAULT_CONFIG_FILE as CONFIG_FILE_NAME
from photosync.config.loader import ConfigError, ConfigLoader
from photosync.config.server_config import (
    SERVER_TYPE_REMOTE,
    VALID_SERVER_TYPES,
    ServerConfig,
    ServerConfigError,
)
from photosync.media.library import MediaLibrary
from photosync.storage.db import SETTING_USER_EMAIL, StateDatabase
from photosync.sync.duplicates import DEFAULT_CHUNK_SIZE, DuplicateDetector
from photosync.sync.engine import DEFAULT_ALBUM_NAME, SyncEngine, SyncError
from photosync.utils import DEFAULT_CONFIG_DIR, resolve_config_dir
from photosync.utils.logging import (
    cleanup_old_logs,
    get_logger,
    get_trace_log_path,
    setup_logging,
    setup_trace_logger,
)
from photosync.utils.paths import default_staging_dir, state_db_path

# Default configuration file
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / CONFIG_FILE_NAME

# Default media library location
DEFAULT_MEDIA_DIR = Path.home() / "Pictures"

REAUTH_MESSAGE = "Device identity missing. Please run 'photosync login' again."


def get_config_dir(config_dir: Optional[str]) -> Path:
    """Get the configuration directory path."""
    return resolve_config_dir(config_dir)


def get_config_file(config_dir: Path, config_file: Optional[str]) -> Path:
    """Get the configuration file path."""
    if config_file:
        return Path(config_file)
    return config_dir / CONFIG_FILE_NAME


def open_state_db(config_dir: Path) -> StateDatabase:
    """Open (and create if needed) the state database."""
    config_dir.mkdir(parents=True, exist_ok=True)
    db = StateDatabase(str(state_db_path(config_dir)))
    db.initialize()
    return db


def get_session_manager(ctx: click.Context) -> SessionManager:
    """Session manager over the state database of the current config dir."""
    if "sessions" not in ctx.obj:
        ctx.obj["sessions"] = SessionManager(open_state_db(ctx.obj["config_dir"]))
    return ctx.obj["sessions"]


def resolve_server_config(
    ctx: click.Context,
    server_type: Optional[str],
    host: Optional[str],
    port: Optional[int],
) -> ServerConfig:
    """
    Combine remembered, config-file and command-line server settings.

    Command-line options take precedence over the config file, which takes
    precedence over the settings remembered from the last login.
    """
    sessions = get_session_manager(ctx)
    config = ctx.obj.get("config", {})

    server = sessions.server_config().merged(
        {
            key: config.get(key)
            for key in ("server_type", "local_host", "remote_host", "server_port")
        }
    )

    overrides: dict[str, Any] = {"server_type": server_type, "server_port": port}
    if host:
        effective_type = server_type or server.server_type
        host_key = "remote_host" if effective_type == SERVER_TYPE_REMOTE else "local_host"
        overrides[host_key] = host
    return server.merged(overrides)


def build_engine(ctx: click.Context, session: Session, media_dir: Optional[str]) -> SyncEngine:
    """Create a SyncEngine from the config file and the restored session."""
    config = ctx.obj.get("config", {})
    config_dir = ctx.obj["config_dir"]

    library_dir = Path(media_dir or config.get("media_dir") or DEFAULT_MEDIA_DIR).expanduser()
    staging_dir = (
        Path(config["staging_dir"]).expanduser()
        if config.get("staging_dir")
        else default_staging_dir(config_dir)
    )

    trash_dir = None
    if config.get("trash_dir"):
        trash_dir = Path(config["trash_dir"]).expanduser()
        if not trash_dir.is_absolute():
            trash_dir = library_dir / trash_dir

    library = MediaLibrary(
        library_dir,
        trash_dir=trash_dir,
        staging_dir=staging_dir,
        permanent_delete=config.get("permanent_delete", False),
    )

    api_kwargs = {
        key: config[config_key]
        for key, config_key in (
            ("request_timeout", "request_timeout"),
            ("upload_timeout", "upload_timeout"),
            ("max_retries", "api_max_retries"),
            ("initial_retry_delay", "api_initial_retry_delay"),
            ("max_retry_delay", "api_max_retry_delay"),
        )
        if config_key in config
    }
    api = get_session_manager(ctx).create_api(session, **api_kwargs)

    return SyncEngine(
        api=api,
        library=library,
        staging_dir=staging_dir,
        album_name=config.get("album_name", DEFAULT_ALBUM_NAME),
        detector=DuplicateDetector(
            chunk_size=config.get("hash_chunk_size", DEFAULT_CHUNK_SIZE)
        ),
    )


def start_trace(ctx: click.Context) -> Path:
    """Open a fresh trace log for one pass."""
    trace_path = get_trace_log_path(ctx.obj.get("log_dir"))
    setup_trace_logger(trace_path)
    return trace_path


def fail(logger: Any, message: str, exc: Optional[BaseException] = None) -> NoReturn:
    """Log, print a red error and exit with status 1."""
    if exc is not None:
        logger.error(f"{message}: {exc}")
        click.echo(click.style(f"Error: {message}: {exc}", fg="red"), err=True)
    else:
        logger.error(message)
        click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    sys.exit(1)


media_dir_option = click.option(
    "--media-dir",
    "-m",
    type=click.Path(exists=False, file_okay=False, dir_okay=True),
    help="Media library directory (default: media_dir from config, or ~/Pictures).",
)


def server_options(func: Any) -> Any:
    """Attach --server-type, --host and --port to a command."""
    func = click.option(
        "--port",
        type=click.IntRange(1, 65535),
        default=None,
        help="Server port (default: 3000).",
    )(func)
    func = click.option(
        "--host",
        "-h",
        default=None,
        help="Server host or IP. Scheme, path and port are stripped.",
    )(func)
    func = click.option(
        "--server-type",
        "-t",
        type=click.Choice(VALID_SERVER_TYPES, case_sensitive=False),
        default=None,
        help="local (http on the LAN) or remote (https).",
    )(func)
    return func


@click.group()
@click.version_option(version=__version__, prog_name="photosync")
@click.option(
    "--verbose", "-v", is_flag=True, help="Enable verbose output with detailed logging."
)
@click.option(
    "--config-dir",
    "-c",
    type=click.Path(exists=False, file_okay=False, dir_okay=True),
    envvar="PHOTOSYNC_CONFIG_DIR",
    help="Configuration directory path (default: ~/.photosync).",
)
@click.option(
    "--config-file",
    "-f",
    type=click.Path(exists=False, file_okay=True, dir_okay=False),
    envvar="PHOTOSYNC_CONFIG_FILE",
    help="Configuration file path (default: <config-dir>/config.yaml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    config_dir: Optional[str],
    config_file: Optional[str],
) -> None:
    """
    PhotoSync client.

    Backs up a local photo library to a PhotoSync server, restores files
    from the server and removes duplicate local copies.
    """
    ctx.ensure_object(dict)

    resolved_config_dir = get_config_dir(config_dir)
    resolved_config_file = get_config_file(resolved_config_dir, config_file)

    ctx.obj["config_dir"] = resolved_config_dir
    ctx.obj["config_file"] = resolved_config_file

    # Load configuration file
    config: dict[str, Any] = {}
    try:
        loader = ConfigLoader(config_dir=resolved_config_dir)
        config = loader.load_from_file(resolved_config_file)
        if config:
            loader.validate(config)
    except ConfigError as e:
        # Show error but don't fail - allow CLI to work without config file
        click.echo(
            click.style(f"Warning: Configuration error: {e}", fg="yellow"), err=True
        )
        config = {}

    ctx.obj["config"] = config

    effective_verbose = verbose or config.get("verbose", False)
    ctx.obj["verbose"] = effective_verbose

    log_dir = Path(config["log_dir"]).expanduser() if config.get("log_dir") else None
    ctx.obj["log_dir"] = log_dir

    setup_logging(verbose=effective_verbose, log_dir=log_dir, enable_file_logging=True)

    log_retention = config.get("log_retention_count", 10)
    if log_retention > 0:
        cleanup_old_logs(log_dir=log_dir, keep_count=log_retention)


# =============================================================================
# Init-Config Command
# =============================================================================


@cli.command("init-config")
@click.option(
    "--force",
    is_flag=True,
    help="Overwrite existing configuration file if it exists.",
)
@click.pass_context
def init_config_command(ctx: click.Context, force: bool) -> None:
    """
    Generate a default configuration file.

    Creates a configuration file with all available options documented
    and commented out.

    Examples:

        photosync init-config

        photosync init-config --force
    """
    logger = get_logger(__name__)
    config_file = ctx.obj["config_file"]

    click.echo(f"Creating configuration file: {config_file}")

    success, error = save_config_file(config_file, overwrite=force)

    if success:
        click.echo(click.style("Configuration file created successfully!", fg="green"))
        click.echo(f"\nLocation: {config_file}")
        click.echo("\nNext steps:")
        click.echo("1. Set media_dir and the server settings")
        click.echo("2. Run 'photosync login'")
        logger.info(f"Created configuration file: {config_file}")
    else:
        fail(logger, error or "Could not create configuration file")


# =============================================================================
# Login / Register / Logout Commands
# =============================================================================


@cli.command("login")
@click.option("--email", "-e", prompt=True, help="Account email.")
@click.option("--password", "-p", prompt=True, hide_input=True, help="Account password.")
@server_options
@click.pass_context
def login_command(
    ctx: click.Context,
    email: str,
    password: str,
    server_type: Optional[str],
    host: Optional[str],
    port: Optional[int],
) -> None:
    """
    Log in to a PhotoSync server.

    The device identity is derived from the email and password, so logging
    in with the same credentials on a new machine reaches the same files.

    Examples:

        photosync login --server-type local --host 192.168.1.20

        photosync login -t remote -h photos.example.com
    """
    logger = get_logger(__name__)

    try:
        server = resolve_server_config(ctx, server_type, host, port)
        session = get_session_manager(ctx).login(email, password, server)
    except (SessionError, ServerConfigError) as e:
        fail(logger, str(e))
    except AuthenticationRequiredError as e:
        fail(logger, "Login rejected", e)
    except ServerAPIError as e:
        fail(logger, "Login failed", e)
    else:
        click.echo(click.style(f"Logged in as {session.email}", fg="green"))
        click.echo(f"Server: {session.server.base_url}")
        click.echo(f"Device identity: {session.device_uuid}")


@cli.command("register")
@click.option("--email", "-e", prompt=True, help="Account email.")
@click.option("--password", "-p", prompt=True, hide_input=True, help="Account password.")
@click.option(
    "--confirm-password",
    prompt="Confirm password",
    hide_input=True,
    help="Repeat the password.",
)
@server_options
@click.pass_context
def register_command(
    ctx: click.Context,
    email: str,
    password: str,
    confirm_password: str,
    server_type: Optional[str],
    host: Optional[str],
    port: Optional[int],
) -> None:
    """
    Create an account on a PhotoSync server.

    Example:

        photosync register --host 192.168.1.20
    """
    logger = get_logger(__name__)

    try:
        server = resolve_server_config(ctx, server_type, host, port)
        get_session_manager(ctx).register(email, password, confirm_password, server)
    except (SessionError, ServerConfigError) as e:
        fail(logger, str(e))
    except ServerAPIError as e:
        fail(logger, "Registration failed", e)
    else:
        click.echo(click.style("Account created.", fg="green"))
        click.echo("Run 'photosync login' to start syncing.")


@cli.command("logout")
@click.pass_context
def logout_command(ctx: click.Context) -> None:
    """Forget the stored session token."""
    get_session_manager(ctx).logout()
    click.echo("Logged out.")


# =============================================================================
# Status / Device-Id Commands
# =============================================================================


@cli.command("status")
@click.pass_context
def status_command(ctx: click.Context) -> None:
    """
    Show login state, server and library settings.

    Example:

        photosync status
    """
    logger = get_logger(__name__)
    config = ctx.obj.get("config", {})
    sessions = get_session_manager(ctx)

    click.echo("=== PhotoSync Status ===\n")
    click.echo(f"Configuration directory: {ctx.obj['config_dir']}")
    media_dir = Path(config.get("media_dir") or DEFAULT_MEDIA_DIR).expanduser()
    click.echo(f"Media directory: {media_dir}")
    click.echo(f"Album: {config.get('album_name', DEFAULT_ALBUM_NAME)}")

    try:
        server = sessions.server_config()
        click.echo(f"Server: {server.base_url} ({server.server_type})")
    except ServerConfigError as e:
        click.echo(click.style(f"Server: invalid settings ({e})", fg="red"))

    click.echo()
    try:
        session = sessions.restore()
    except IdentityError:
        logger.warning("Session discarded: no device identity")
        click.echo(click.style("Session: discarded, please log in again", fg="yellow"))
        return

    if session is None:
        click.echo(f"Session: {click.style('Not logged in', fg='red')}")
        return

    click.echo(f"Session: {click.style('Logged in', fg='green')} as {session.email}")
    click.echo(f"Device identity: {session.device_uuid}")


@cli.command("device-id")
@click.option("--email", "-e", default=None, help="Email (default: logged-in user).")
@click.option(
    "--password",
    "-p",
    default=None,
    help="Derive from credentials instead of reading the stored value.",
)
@click.pass_context
def device_id_command(
    ctx: click.Context, email: Optional[str], password: Optional[str]
) -> None:
    """
    Print the device identity for an email.

    Without --password only a stored identity can be shown.
    """
    logger = get_logger(__name__)
    sessions = get_session_manager(ctx)

    if not email:
        email = sessions.db.get_setting(SETTING_USER_EMAIL)
    if not email:
        fail(logger, "No email given and nobody is logged in")

    device_uuid = sessions.resolver.resolve(email, password)
    if device_uuid is None:
        fail(logger, f"No device identity stored for {email}")
    click.echo(str(device_uuid))


# =============================================================================
# Pass Commands
# =============================================================================


def _require_session(ctx: click.Context, logger: Any) -> Session:
    try:
        return get_session_manager(ctx).require()
    except IdentityError:
        fail(logger, REAUTH_MESSAGE)
    except AuthenticationRequiredError as e:
        fail(logger, str(e))


def _dry_run(ctx: click.Context, dry_run: bool) -> bool:
    return dry_run or ctx.obj.get("config", {}).get("dry_run", False)


@cli.command("backup")
@click.option(
    "--dry-run", "-n", is_flag=True, help="Show what would be uploaded."
)
@media_dir_option
@click.pass_context
def backup_command(ctx: click.Context, dry_run: bool, media_dir: Optional[str]) -> None:
    """
    Upload local photos and videos the server does not have.

    Files are compared by name, ignoring case. Files in the restore album
    are skipped.

    Examples:

        photosync backup --dry-run

        photosync backup --media-dir ~/Pictures/phone
    """
    logger = get_logger(__name__)
    session = _require_session(ctx, logger)
    effective_dry_run = _dry_run(ctx, dry_run)

    try:
        engine = build_engine(ctx, session, media_dir)
        trace_path = start_trace(ctx)
        if effective_dry_run:
            result = engine.backup(dry_run=True)
        else:
            with ProgressBar("Uploading") as progress:
                result = engine.backup(progress=progress)
    except IdentityError:
        fail(logger, REAUTH_MESSAGE)
    except AuthenticationRequiredError as e:
        fail(logger, "Session rejected, please log in again", e)
    except SyncError as e:
        fail(logger, "Backup failed", e)
    except Exception as e:
        logger.exception(f"Backup failed: {e}")
        fail(logger, "Backup failed", e)
    else:
        if effective_dry_run:
            show_backup_plan(result)
        click.echo()
        click.echo(result.summary())
        click.echo(f"\nTrace log: {trace_path}")
        if result.report is not None:
            click.echo(style_outcome(result.report.failed, "Backup finished"))
            if result.report.failed:
                sys.exit(1)


@cli.command("restore")
@click.option(
    "--dry-run", "-n", is_flag=True, help="Show what would be downloaded."
)
@media_dir_option
@click.pass_context
def restore_command(ctx: click.Context, dry_run: bool, media_dir: Optional[str]) -> None:
    """
    Download server files the library does not have.

    Restored files are placed in the PhotoSync album so the next backup
    does not send them back.

    Example:

        photosync restore
    """
    logger = get_logger(__name__)
    session = _require_session(ctx, logger)
    effective_dry_run = _dry_run(ctx, dry_run)

    try:
        engine = build_engine(ctx, session, media_dir)
        trace_path = start_trace(ctx)
        if effective_dry_run:
            result = engine.restore(dry_run=True)
        else:
            with ProgressBar("Downloading") as progress:
                result = engine.restore(progress=progress)
    except IdentityError:
        fail(logger, REAUTH_MESSAGE)
    except AuthenticationRequiredError as e:
        fail(logger, "Session rejected, please log in again", e)
    except SyncError as e:
        fail(logger, "Restore failed", e)
    except Exception as e:
        logger.exception(f"Restore failed: {e}")
        fail(logger, "Restore failed", e)
    else:
        if effective_dry_run:
            show_restore_plan(result)
        click.echo()
        click.echo(result.summary())
        click.echo(f"\nTrace log: {trace_path}")
        if result.report is not None:
            click.echo(style_outcome(result.report.failed, "Restore finished"))
            if result.report.failed:
                sys.exit(1)


@cli.command("clean-duplicates")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt.")
@click.option(
    "--dry-run", "-n", is_flag=True, help="Only list duplicates, delete nothing."
)
@media_dir_option
@click.pass_context
def clean_duplicates_command(
    ctx: click.Context, yes: bool, dry_run: bool, media_dir: Optional[str]
) -> None:
    """
    Delete redundant local copies of identical photos and videos.

    Files are compared by SHA-256 of their content. In each group the
    oldest copy is kept. Deleted files go to the trash directory unless
    permanent_delete is set.

    Examples:

        photosync clean-duplicates --dry-run

        photosync clean-duplicates --yes
    """
    logger = get_logger(__name__)
    session = _require_session(ctx, logger)
    effective_dry_run = _dry_run(ctx, dry_run)

    def confirm(scan: Any) -> bool:
        show_duplicate_groups(scan)
        if yes:
            return True
        return click.confirm(
            f"\nDelete {scan.duplicate_count} duplicate files?", default=False
        )

    try:
        engine = build_engine(ctx, session, media_dir)
        trace_path = start_trace(ctx)
        if effective_dry_run:
            result = engine.clean_duplicates(confirm=confirm, dry_run=True)
            show_duplicate_groups(result.scan)
        else:
            result = engine.clean_duplicates(confirm=confirm)
    except SyncError as e:
        fail(logger, "Duplicate cleanup failed", e)
    except Exception as e:
        logger.exception(f"Duplicate cleanup failed: {e}")
        fail(logger, "Duplicate cleanup failed", e)
    else:
        click.echo()
        click.echo(result.summary())
        click.echo(f"\nTrace log: {trace_path}")
        if result.report is not None and result.report.delete_error:
            sys.exit(1)
