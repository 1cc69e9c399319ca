"""SQL Managed Instance provider CLI (sqlmi).

Drives the reconciler from the command line. Desired configuration comes
from a YAML spec file; the caller keeps the resource ID printed by create.

Usage:
    sqlmi validate instance.yaml      # Validate a spec without calling Azure
    sqlmi create instance.yaml        # Create and print observed state
    sqlmi show ID                     # Read observed state
    sqlmi import ID                   # Populate state from an existing instance
    sqlmi update ID instance.yaml     # Apply changed fields in place
    sqlmi delete ID                   # Delete the instance
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import click

from .config import Config, ConfigurationError
from .errors import ReconcileError
from .main import build_reconciler, setup_logging
from .models import ManagedInstanceConfig, ManagedInstanceDiff, ManagedInstanceState
from .reconciler import ManagedInstanceReconciler
from .security import SecretlessViolationError
from .spec_loader import SpecLoadError, load_spec

logger = logging.getLogger(__name__)

T = TypeVar("T")

SPEC_PATH = click.Path(exists=False, dir_okay=False, path_type=Path)


def _load(spec_path: Path) -> ManagedInstanceConfig:
    try:
        return load_spec(spec_path)
    except (SpecLoadError, ReconcileError) as e:
        raise click.ClickException(str(e)) from e


def _reconciler() -> ManagedInstanceReconciler:
    try:
        config = Config.from_env()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    setup_logging(json_output=config.json_logging)

    try:
        return build_reconciler(config)
    except SecretlessViolationError as e:
        raise click.ClickException(str(e)) from e


def _run(operation: Coroutine[Any, Any, T]) -> T:
    try:
        return asyncio.run(operation)
    except ReconcileError as e:
        logger.error(
            "SQL Managed Instance operation failed",
            extra={**e.log_context(), "error": str(e)},
        )
        raise click.ClickException(str(e)) from e


def _echo_state(state: ManagedInstanceState) -> None:
    click.echo(state.model_dump_json(indent=2))


@click.group()
@click.version_option(version="0.1.0", prog_name="sqlmi")
def cli() -> None:
    """Azure SQL Managed Instance lifecycle tool.

    Authenticates with a managed identity. Configure with AZURE_SUBSCRIPTION_ID
    and, for a user-assigned identity, AZURE_CLIENT_ID.
    """
    pass


@cli.command()
@click.argument("spec_path", type=SPEC_PATH)
def validate(spec_path: Path) -> None:
    """Validate a spec file without calling Azure."""
    config = _load(spec_path)
    click.secho(
        f"✓ {config.name} (Resource Group {config.resource_group_name}) is valid",
        fg="green",
    )


@cli.command()
@click.argument("spec_path", type=SPEC_PATH)
def create(spec_path: Path) -> None:
    """Create a managed instance and print its state."""
    desired = _load(spec_path)
    reconciler = _reconciler()
    _echo_state(_run(reconciler.create(desired)))


@cli.command()
@click.argument("resource_id")
def show(resource_id: str) -> None:
    """Print the observed state of a managed instance."""
    reconciler = _reconciler()
    state = _run(reconciler.read(resource_id))
    if state is None:
        raise click.ClickException(f"SQL Managed Instance {resource_id!r} was not found")
    _echo_state(state)


@cli.command(name="import")
@click.argument("resource_id")
def import_(resource_id: str) -> None:
    """Import an existing managed instance and print its state."""
    reconciler = _reconciler()
    _echo_state(_run(reconciler.import_state(resource_id)))


async def _update_and_read(
    reconciler: ManagedInstanceReconciler,
    resource_id: str,
    desired: ManagedInstanceConfig,
    password_changed: bool,
) -> tuple[ManagedInstanceDiff, ManagedInstanceState | None]:
    prior = await reconciler.import_state(resource_id)
    diff = ManagedInstanceDiff.between(prior, desired, password_changed=password_changed)
    await reconciler.update(resource_id, diff)
    return diff, await reconciler.read(resource_id)


@cli.command()
@click.argument("resource_id")
@click.argument("spec_path", type=SPEC_PATH)
@click.option(
    "--password-changed",
    is_flag=True,
    help="Send the administrator password (it cannot be compared remotely)",
)
def update(resource_id: str, spec_path: Path, password_changed: bool) -> None:
    """Update a managed instance in place to match a spec."""
    desired = _load(spec_path)
    reconciler = _reconciler()
    diff, state = _run(_update_and_read(reconciler, resource_id, desired, password_changed))

    if not diff.changed:
        click.echo("No changes", err=True)
    else:
        click.echo(f"Updated: {', '.join(sorted(diff.changed))}", err=True)

    if state is None:
        raise click.ClickException(f"SQL Managed Instance {resource_id!r} disappeared after update")
    _echo_state(state)


@cli.command()
@click.argument("resource_id")
def delete(resource_id: str) -> None:
    """Delete a managed instance."""
    reconciler = _reconciler()
    _run(reconciler.delete(resource_id))
    click.secho(f"✓ Deleted {resource_id}", fg="green")


def main() -> None:
    """Entry point for the sqlmi CLI."""
    cli()


if __name__ == "__main__":
    main()
