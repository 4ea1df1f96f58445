"""CLI interface for Azimuth sync."""

import logging
from pathlib import Path
from typing import Any, Callable, Optional

import click

from . import commands
from .config import config
from .exceptions import AzimuthError
from .output import OutputFormatter
from .providers import PROVIDER_NAMES, create_provider
from .sync.conflicts import ConflictResolution
from .sync.state import SyncConfig

logger = logging.getLogger(__name__)

SECRET_CREDENTIAL_KEYS = ("accessKey", "secretKey", "accessToken")


def _provider_options(f: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the provider and credential options shared by several commands."""
    options = [
        click.option(
            "--provider",
            "-p",
            type=click.Choice(PROVIDER_NAMES),
            default=None,
            help="Cloud provider",
        ),
        click.option("--bucket", help="S3 bucket name"),
        click.option("--region", help="S3 region (e.g., eu-central-1)"),
        click.option("--access-key", envvar="AZIMUTH_S3_ACCESS_KEY", help="S3 access key"),
        click.option("--secret-key", envvar="AZIMUTH_S3_SECRET_KEY", help="S3 secret key"),
        click.option("--endpoint-url", help="Endpoint of an S3-compatible service"),
        click.option(
            "--access-token",
            envvar="AZIMUTH_ACCESS_TOKEN",
            help="OAuth access token (Dropbox, OneDrive, Google Drive)",
        ),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def build_credentials(
    provider: str,
    bucket: Optional[str] = None,
    region: Optional[str] = None,
    access_key: Optional[str] = None,
    secret_key: Optional[str] = None,
    endpoint_url: Optional[str] = None,
    access_token: Optional[str] = None,
) -> dict[str, Any]:
    """Build a credentials blob in the shape stored in ``.sync_config.json``.

    Examples:
        >>> build_credentials("dropbox", access_token="sl.abc")
        {'accessToken': 'sl.abc'}
    """
    if provider == "s3":
        values = {
            "bucket": bucket,
            "region": region,
            "accessKey": access_key,
            "secretKey": secret_key,
            "endpointUrl": endpoint_url,
        }
    else:
        values = {"accessToken": access_token}
    return {key: value for key, value in values.items() if value}


def mask_secret(value: str) -> str:
    """Hide all but the last four characters of a secret.

    Examples:
        >>> mask_secret("abcdefgh1234")
        '********1234'
        >>> mask_secret("abc")
        '***'
    """
    if len(value) <= 4:
        return "*" * len(value)
    return "*" * (len(value) - 4) + value[-4:]


def _resolve_root(path: Optional[str]) -> Path:
    """Sync root given on the command line, or the configured notes directory."""
    if path:
        return Path(path).expanduser()
    return config.notes_dir


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="azimuth-sync")
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """Azimuth Sync - keep your notes in sync with S3, Dropbox, OneDrive
    or Google Drive."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("azimuth_sync").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.argument("path", type=str, required=False, default=None)
@_provider_options
@click.option(
    "--last-sync",
    help="ISO time of the last completed sync (only with --provider)",
)
@click.option(
    "--dry-run", is_flag=True, help="Show what would be synced without syncing"
)
@click.option(
    "--workers",
    type=int,
    default=1,
    help="Number of parallel workers for uploads/downloads (default: 1)",
)
@click.pass_context
def sync(
    ctx: Any,
    path: Optional[str],
    provider: Optional[str],
    bucket: Optional[str],
    region: Optional[str],
    access_key: Optional[str],
    secret_key: Optional[str],
    endpoint_url: Optional[str],
    access_token: Optional[str],
    last_sync: Optional[str],
    dry_run: bool,
    workers: int,
) -> None:
    """Sync a notes directory with cloud storage.

    PATH: Notes directory (defaults to the configured notes directory)

    Without --provider the directory's saved sync configuration is used and
    the time of the run is recorded as its last sync.

    Examples:
        azimuth-sync sync                              # Use saved config
        azimuth-sync sync ~/Notes --dry-run            # Preview changes
        azimuth-sync sync ~/Notes -p dropbox --access-token sl.xxx
        azimuth-sync sync ~/Notes -p s3 --bucket notes --region eu-central-1 \\
            --access-key AKIA... --secret-key ...
    """
    out: OutputFormatter = ctx.obj["out"]

    if workers < 1:
        out.error("Workers must be at least 1")
        ctx.exit(1)

    try:
        root = _resolve_root(path)
        if provider is None:
            outcome = commands.sync_with_config(
                root, output=out, max_workers=workers, dry_run=dry_run
            )
        else:
            credentials = build_credentials(
                provider,
                bucket=bucket,
                region=region,
                access_key=access_key,
                secret_key=secret_key,
                endpoint_url=endpoint_url,
                access_token=access_token,
            )
            outcome = commands.run_sync(
                create_provider(provider, credentials),
                root,
                last_sync=last_sync,
                output=out,
                max_workers=workers,
                dry_run=dry_run,
            )
    except KeyboardInterrupt:
        out.warning("\nSync cancelled by user")
        ctx.exit(130)
        return
    except AzimuthError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(outcome.to_dict())
    elif out.quiet:
        click.echo(outcome.message)


@main.command()
@click.argument("path", type=str, required=False, default=None)
@click.pass_context
def conflicts(ctx: Any, path: Optional[str]) -> None:
    """List notes with an unresolved conflict.

    PATH: Notes directory (defaults to the configured notes directory)
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        root = _resolve_root(path)
        pending = commands.list_conflicts(root)
    except AzimuthError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json({"conflicts": pending})
        return

    if not pending:
        out.success("No conflicts")
        return

    out.warning(f"{len(pending)} conflict(s):")
    for relative_path in pending:
        click.echo(f"  {relative_path}")
    out.info("Resolve with: azimuth-sync resolve PATH FILE --keep local|remote|both")


@main.command()
@click.argument("path", type=str)
@click.argument("file_path", type=str)
@click.option(
    "--keep",
    "-k",
    type=click.Choice(["local", "remote", "both"]),
    required=True,
    help="Version to keep",
)
@click.pass_context
def resolve(ctx: Any, path: str, file_path: str, keep: str) -> None:
    """Resolve a conflict.

    PATH: Notes directory

    FILE_PATH: Conflicted note, relative to the notes directory

    \b
    Resolutions:
      - local: Keep the local version and discard the remote one
      - remote: Replace the local version with the remote one
      - both: Keep both; the remote version is renamed to NAME_conflict.EXT
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        root = _resolve_root(path)
        commands.resolve_conflict(
            root, ConflictResolution(file_path=file_path, resolution=f"keep_{keep}")
        )
    except AzimuthError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json({"file_path": file_path, "resolution": f"keep_{keep}"})
    else:
        out.success(f"Resolved {file_path} (kept {keep})")


@main.group(name="config")
def config_group() -> None:
    """Show or change the sync configuration of a notes directory."""


@config_group.command(name="show")
@click.argument("path", type=str, required=False, default=None)
@click.pass_context
def config_show(ctx: Any, path: Optional[str]) -> None:
    """Show the sync configuration (secrets masked)."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        root = _resolve_root(path)
        sync_config = commands.load_sync_config(root)
    except AzimuthError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if sync_config is None:
        if out.json_output:
            out.output_json(None)
        else:
            out.warning(f"Sync is not configured for {root}")
        return

    data = sync_config.to_dict()
    data["credentials"] = {
        key: mask_secret(str(value)) if key in SECRET_CREDENTIAL_KEYS else value
        for key, value in sync_config.credentials.items()
    }

    if out.json_output:
        out.output_json(data)
        return

    out.info(f"Notes directory: {root}")
    out.info(f"Provider:        {sync_config.provider}")
    out.info(f"Enabled:         {'yes' if sync_config.enabled else 'no'}")
    out.info(f"Last sync:       {sync_config.last_sync or 'never'}")
    for key, value in data["credentials"].items():
        out.info(f"  {key}: {value}")


@config_group.command(name="set")
@click.argument("path", type=str, required=False, default=None)
@_provider_options
@click.option("--disable", is_flag=True, help="Save the configuration disabled")
@click.pass_context
def config_set(
    ctx: Any,
    path: Optional[str],
    provider: Optional[str],
    bucket: Optional[str],
    region: Optional[str],
    access_key: Optional[str],
    secret_key: Optional[str],
    endpoint_url: Optional[str],
    access_token: Optional[str],
    disable: bool,
) -> None:
    """Save the sync configuration of a notes directory.

    The previous last sync time is kept when the provider does not change.

    Examples:
        azimuth-sync config set ~/Notes -p onedrive --access-token eyJ0...
    """
    out: OutputFormatter = ctx.obj["out"]

    if provider is None:
        out.error("--provider is required")
        ctx.exit(1)
        return

    credentials = build_credentials(
        provider,
        bucket=bucket,
        region=region,
        access_key=access_key,
        secret_key=secret_key,
        endpoint_url=endpoint_url,
        access_token=access_token,
    )

    try:
        root = _resolve_root(path)
        # Validates the credentials without contacting the provider
        create_provider(provider, credentials).close()

        previous = commands.load_sync_config(root)
        last_sync = (
            previous.last_sync
            if previous is not None and previous.provider == provider
            else None
        )
        commands.save_sync_config(
            root,
            SyncConfig(
                provider=provider,
                enabled=not disable,
                credentials=credentials,
                last_sync=last_sync,
            ),
        )
    except AzimuthError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json({"path": str(root), "provider": provider, "enabled": not disable})
    else:
        out.success(f"Saved {provider} sync configuration for {root}")


@main.command(name="notes-dir")
@click.argument("new_dir", type=str, required=False, default=None)
@click.pass_context
def notes_dir(ctx: Any, new_dir: Optional[str]) -> None:
    """Show or set the default notes directory."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        if new_dir:
            config.set_notes_dir(Path(new_dir))
        current = config.notes_dir
    except AzimuthError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json({"notes_dir": str(current)})
    elif new_dir:
        out.success(f"Notes directory set to {current}")
    else:
        click.echo(str(current))


if __name__ == "__main__":
    main()
