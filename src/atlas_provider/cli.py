"""Atlas provider CLI (atlasp).

Drives the resource handlers from YAML documents and keeps state in a
local directory.

Usage:
    atlasp apply alerts.yaml                          # Create or update resources
    atlasp refresh AlertConfiguration.cpu-high        # Re-read one resource
    atlasp destroy AlertConfiguration.cpu-high        # Delete one resource
    atlasp import AlertConfiguration.cpu-high ID      # Adopt an existing object
    atlasp restore-jobs -p PROJECT -c CLUSTER         # List shared-tier restores
    atlasp alert-configs -p PROJECT                   # Find alert import ids

Exit codes: 1 for configuration and input errors, 2 for failures reported
by Atlas or while waiting on it.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import click
import requests

from .client import AtlasAPIError
from .cloud_backup_snapshot import SnapshotFailedError
from .config import ConfigurationError, ProviderConfig
from .errors import AtlasProviderError, ResourceOperationError
from .main import setup_logging
from .models import StateModel
from .provider import Provider
from .security import redact_state
from .spec_loader import load_specs
from .waiter import UnexpectedStateError, WaitTimeoutError

VERSION = "0.1.0"

EXIT_USER_ERROR = 1
EXIT_REMOTE_ERROR = 2

REMOTE_ERRORS = (
    AtlasAPIError,
    ResourceOperationError,
    SnapshotFailedError,
    UnexpectedStateError,
    WaitTimeoutError,
)


class RemoteError(click.ClickException):
    """A failure reported by Atlas rather than by the user's input."""

    exit_code = EXIT_REMOTE_ERROR


@contextmanager
def handle_errors() -> Iterator[None]:
    """Translate provider exceptions into click exceptions with exit codes."""
    try:
        yield
    except REMOTE_ERRORS as e:
        raise RemoteError(str(e)) from e
    except requests.RequestException as e:
        raise RemoteError(f"request to Atlas failed: {e}") from e
    except (AtlasProviderError, ConfigurationError) as e:
        raise click.ClickException(str(e)) from e


def parse_address(address: str) -> tuple[str, str]:
    """Split ``Kind.name`` into its parts."""
    kind, sep, name = address.partition(".")
    if not sep or not kind or not name:
        raise click.BadParameter(f"expected Kind.name, got {address!r}", param_hint="ADDRESS")
    return kind, name


def echo_state(state: StateModel | None) -> None:
    if state is None:
        click.echo("null")
        return
    click.echo(json.dumps(redact_state(state.model_dump(mode="json")), indent=2, sort_keys=True))


def open_provider(state_dir: Path | None) -> Provider:
    """Build a provider from the environment."""
    config = ProviderConfig.from_env()
    if state_dir is not None:
        config = dataclasses.replace(config, state_dir=state_dir)
    return Provider(config)


# =============================================================================
# Main CLI Group
# =============================================================================


@click.group()
@click.version_option(version=VERSION, prog_name="atlasp")
@click.option("--json-logs", is_flag=True, help="Emit structured JSON logs on stdout")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option(
    "--state-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="State directory (default: $ATLAS_STATE_DIR or .atlas-state)",
)
@click.pass_context
def cli(ctx: click.Context, json_logs: bool, verbose: bool, state_dir: Path | None) -> None:
    """MongoDB Atlas provider CLI (atlasp).

    Credentials come from MONGODB_ATLAS_PUBLIC_KEY and
    MONGODB_ATLAS_PRIVATE_KEY.
    """
    setup_logging(json_output=json_logs, level=logging.DEBUG if verbose else logging.INFO)
    ctx.ensure_object(dict)
    ctx.obj["state_dir"] = state_dir


@cli.command()
@click.argument("spec_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def apply(ctx: click.Context, spec_file: Path) -> None:
    """Create, update or replace every resource in SPEC_FILE."""
    with handle_errors():
        resources = load_specs(spec_file)
        with open_provider(ctx.obj["state_dir"]) as provider:
            for resource in resources:
                result = provider.apply(resource)
                click.echo(f"{result.address}: {result.action.value}")


@cli.command()
@click.argument("address")
@click.pass_context
def refresh(ctx: click.Context, address: str) -> None:
    """Re-read ADDRESS (Kind.name) from Atlas and print its state."""
    kind, name = parse_address(address)
    with handle_errors(), open_provider(ctx.obj["state_dir"]) as provider:
        state = provider.refresh(kind, name)
        if state is None:
            click.echo(f"{address}: gone, state removed", err=True)
        echo_state(state)


@cli.command()
@click.argument("address")
@click.pass_context
def destroy(ctx: click.Context, address: str) -> None:
    """Delete ADDRESS (Kind.name) in Atlas and drop its state."""
    kind, name = parse_address(address)
    with handle_errors(), open_provider(ctx.obj["state_dir"]) as provider:
        if provider.destroy(kind, name):
            click.echo(f"{address}: destroyed")
        else:
            click.echo(f"{address}: no state, nothing to do")


@cli.command("import")
@click.argument("address")
@click.argument("import_id")
@click.pass_context
def import_(ctx: click.Context, address: str, import_id: str) -> None:
    """Adopt the Atlas object IMPORT_ID as ADDRESS (Kind.name).

    \b
    Import id formats:
        AlertConfiguration   {project_id}-{alert_configuration_id}
        CloudBackupSnapshot  {project_id}-{cluster_name}-{snapshot_id}
        Project              {project_id}
    """
    kind, name = parse_address(address)
    with handle_errors(), open_provider(ctx.obj["state_dir"]) as provider:
        echo_state(provider.import_resource(kind, name, import_id))


@cli.command("alert-configs")
@click.option("--project-id", "-p", required=True, help="Project id")
@click.pass_context
def alert_configs(ctx: click.Context, project_id: str) -> None:
    """List alert configurations of a project with their import ids."""
    with handle_errors(), open_provider(ctx.obj["state_dir"]) as provider:
        for import_id, event_type in provider.list_alert_configurations(project_id):
            click.echo(f"{import_id}  {event_type}")


@cli.command("restore-jobs")
@click.option("--project-id", "-p", required=True, help="Project id")
@click.option("--cluster-name", "-c", required=True, help="Shared-tier cluster name")
@click.pass_context
def restore_jobs(ctx: click.Context, project_id: str, cluster_name: str) -> None:
    """List restore jobs of a shared-tier cluster."""
    query: dict[str, Any] = {"project_id": project_id, "cluster_name": cluster_name}
    with handle_errors(), open_provider(ctx.obj["state_dir"]) as provider:
        echo_state(provider.read_data_source(query))


@cli.command()
def version() -> None:
    """Print the CLI version."""
    click.echo(f"atlasp {VERSION}")
