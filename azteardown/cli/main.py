"""Main CLI entry point using Typer."""

import logging
import sys
from datetime import datetime
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from ..azure.client import ArmClient
from ..azure.credentials import get_credential, validate_credentials
from ..azure.errors import CredentialValidationError
from ..azure.service import ResourceService
from ..models.deletion_operation import OperationStatus
from ..models.deletion_record import DeletionRecord, DeletionStatus
from ..models.removal_target import RemovalTarget
from ..models.retry_policy import REMOVAL_CYCLE_POLICY, RetryPolicy
from ..removal.audit import AuditStorage
from ..removal.cleaner import TeardownResult, TeardownRunner
from ..removal.context import ActionStatus
from ..removal.errors import RemovalError
from ..removal.registry import RecipeRegistry
from ..removal.remover import RemovalReport, ResourceRemover
from ..removal.targets import DeploymentTargetCollector, load_targets
from ..utils.logging import setup_logging
from .config import Config

logger = logging.getLogger(__name__)

# Create Typer app
app = typer.Typer(
    name="azteardown",
    help="Azure Teardown - remove Azure resources with per-type removal recipes",
    add_completion=False,
)

# Create Rich console for output
console = Console()

# Global config
config: Optional[Config] = None

STATUS_STYLES = {
    DeletionStatus.SUCCEEDED: "green",
    DeletionStatus.PLANNED: "cyan",
    DeletionStatus.SKIPPED: "yellow",
    DeletionStatus.FAILED: "red",
}


@app.callback()
def main(
    tenant: Optional[str] = typer.Option(None, "--tenant", "-t", help="Azure tenant ID"),
    audit_path: Optional[str] = typer.Option(
        None,
        "--audit-path",
        help="Custom path for audit logs (default: ~/.azteardown/audit-logs or $AZTEARDOWN_AUDIT_PATH)",
    ),
    config_file: Optional[str] = typer.Option(None, "--config", help="Config file (default: ~/.azteardown/config.yaml)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output except errors"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
):
    """Azure Teardown - remove Azure resources with per-type removal recipes."""
    global config

    # Load configuration
    try:
        config = Config.load(config_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"✗ Invalid configuration: {e}", style="bold red")
        raise typer.Exit(code=1)

    # Override with CLI options
    if tenant:
        config.tenant_id = tenant
    if audit_path:
        config.audit_path = audit_path

    # Setup logging
    log_level = "ERROR" if quiet else ("DEBUG" if verbose else config.log_level)
    setup_logging(level=log_level, verbose=verbose)

    # Disable colors if requested
    if no_color:
        console.no_color = True


@app.command()
def version():
    """Show version information."""
    import azure.identity

    from .. import __version__

    console.print(f"azure-teardown version {__version__}")
    console.print(f"Python {sys.version.split()[0]}")
    console.print(f"azure-identity {azure.identity.__version__}")


@app.command("types")
def list_types():
    """List resource types with a dedicated removal recipe."""
    registry = RecipeRegistry()

    table = Table(show_header=True, title="Removal Recipes")
    table.add_column("Resource Type", style="cyan")
    table.add_column("Recipe", style="green")

    for resource_type, recipe in registry.supported_types().items():
        table.add_row(resource_type, recipe)

    console.print(table)
    console.print(f"\nAll other types use {registry.default.name} (forced delete by ID).")


@app.command()
def remove(
    resource_id: str = typer.Argument(..., help="Full ARM resource ID"),
    resource_type: Optional[str] = typer.Option(
        None, "--type", help="Resource type selecting the recipe (default: derived from the ID)"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the actions without performing them"),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask before each change"),
):
    """Remove a single resource with the recipe for its type."""
    try:
        try:
            target = RemovalTarget(resource_id, resource_type)
        except ValueError as e:
            console.print(f"✗ {e}", style="bold red")
            raise typer.Exit(code=1)

        remover = _build_remover()
        confirm = None if force else _confirm_step

        report = remover.remove(target.resource_id, target.resource_type, dry_run=dry_run, force=force, confirm=confirm)
        _print_report(report, dry_run)

    except typer.Exit:
        raise
    except CredentialValidationError as e:
        console.print(f"✗ Error: {e}", style="bold red")
        raise typer.Exit(code=3)
    except RemovalError as e:
        console.print(f"✗ {e.error_code}: {e.error_message}", style="bold red")
        console.print(f"  Resource: {e.resource_id}", style="yellow")
        console.print(f"  Type: {e.resource_type}", style="yellow")
        console.print(f"  Failed step: {e.step}", style="yellow")
        raise typer.Exit(code=2)
    except Exception as e:
        console.print(f"✗ Error removing resource: {e}", style="bold red")
        logger.exception("Error in remove command")
        raise typer.Exit(code=2)


@app.command("remove-list")
def remove_list(
    targets_file: str = typer.Argument(..., help="YAML file listing resource IDs (and optional types)"),
    subscription: Optional[str] = typer.Option(None, "--subscription", "-s", help="Subscription ID for the audit log"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the actions without performing them"),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask before each change"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation of the whole teardown"),
):
    """Remove every resource listed in a targets file."""
    try:
        try:
            targets = load_targets(targets_file)
        except (FileNotFoundError, ValueError) as e:
            console.print(f"✗ {e}", style="bold red")
            raise typer.Exit(code=1)

        _run_teardown(targets, targets_file, subscription, dry_run, force, yes)

    except typer.Exit:
        raise
    except CredentialValidationError as e:
        console.print(f"✗ Error: {e}", style="bold red")
        raise typer.Exit(code=3)
    except Exception as e:
        console.print(f"✗ Error during teardown: {e}", style="bold red")
        logger.exception("Error in remove-list command")
        raise typer.Exit(code=2)


@app.command("remove-deployment")
def remove_deployment(
    name: str = typer.Argument(..., help="Deployment name"),
    scope: str = typer.Option(
        ..., "--scope", help="Deployment scope (resource group, subscription or management group ID)"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the actions without performing them"),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask before each change"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation of the whole teardown"),
):
    """Remove every resource created by a deployment, including nested deployments."""
    try:
        scope = scope.rstrip("/")
        if scope and not scope.startswith("/"):
            console.print(f"✗ Scope must be an ARM ID starting with '/': {scope}", style="bold red")
            raise typer.Exit(code=1)

        service = _build_service()
        try:
            targets = DeploymentTargetCollector(service).collect(scope, name)
        except ValueError as e:
            console.print(f"✗ {e}", style="bold red")
            raise typer.Exit(code=1)

        subscription_id = _subscription_of(scope)
        _run_teardown(targets, f"deployment:{name}", subscription_id, dry_run, force, yes, service=service)

    except typer.Exit:
        raise
    except CredentialValidationError as e:
        console.print(f"✗ Error: {e}", style="bold red")
        raise typer.Exit(code=3)
    except Exception as e:
        console.print(f"✗ Error during teardown: {e}", style="bold red")
        logger.exception("Error in remove-deployment command")
        raise typer.Exit(code=2)


# Audit commands group
audit_app = typer.Typer(help="Teardown audit log commands")
app.add_typer(audit_app, name="audit")


@audit_app.command("list")
def audit_list(
    since: Optional[str] = typer.Option(None, "--since", help="Only operations on or after this date (YYYY-MM-DD)"),
    until: Optional[str] = typer.Option(None, "--until", help="Only operations on or before this date (YYYY-MM-DD)"),
):
    """List logged teardown operations."""
    try:
        since_dt = _parse_date(since, "--since")
        until_dt = _parse_date(until, "--until")
        if until_dt:
            until_dt = until_dt.replace(hour=23, minute=59, second=59)

        storage = AuditStorage(config.audit_path)
        operations = storage.query_operations(since=since_dt, until=until_dt)

        if not operations:
            console.print("No teardown operations found.", style="yellow")
            return

        table = Table(show_header=True, title="Teardown Operations")
        table.add_column("Operation", style="cyan")
        table.add_column("Started", style="green")
        table.add_column("Source")
        table.add_column("Status")
        table.add_column("Succeeded", justify="right")
        table.add_column("Failed", justify="right")
        table.add_column("Skipped", justify="right")

        for audit in operations:
            op = audit["operation"]
            table.add_row(
                op["operation_id"],
                op["timestamp"],
                op["source"],
                op["status"],
                str(op["succeeded_count"]),
                str(op["failed_count"]),
                str(op["skipped_count"]),
            )

        console.print(table)
        console.print(f"\nTotal operations: {len(operations)}")

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"✗ Error listing audit logs: {e}", style="bold red")
        raise typer.Exit(code=1)


@audit_app.command("show")
def audit_show(operation_id: str = typer.Argument(..., help="Operation ID")):
    """Show the records of a logged teardown operation."""
    try:
        storage = AuditStorage(config.audit_path)
        audit = storage.get_operation(operation_id)
        if audit is None:
            console.print(f"✗ Operation '{operation_id}' not found", style="bold red")
            raise typer.Exit(code=1)

        op = audit["operation"]
        console.print(f"\n[bold]Operation:[/bold] {op['operation_id']}")
        console.print(f"  Source: {op['source']}")
        console.print(f"  Subscription: {op.get('subscription_id') or '-'}")
        console.print(f"  Status: {op['status']}")
        console.print(f"  Started: {op.get('started_at') or op['timestamp']}")
        if op.get("duration_seconds") is not None:
            console.print(f"  Duration: {op['duration_seconds']:.1f}s")

        table = Table(show_header=True)
        table.add_column("Resource", style="cyan", overflow="fold")
        table.add_column("Recipe")
        table.add_column("Status")
        table.add_column("Details", overflow="fold")

        for record in audit.get("records", []):
            details = record.get("error_message") or record.get("skip_reason") or ""
            if record.get("error_code"):
                details = f"{record['error_code']}: {details}"
            table.add_row(record["resource_id"], record.get("recipe") or "", record["status"], details)

        console.print(table)

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"✗ Error reading audit log: {e}", style="bold red")
        raise typer.Exit(code=1)


def _build_service() -> ResourceService:
    """Create an authenticated resource service.

    Raises:
        CredentialValidationError: If no management token can be acquired
    """
    credential = get_credential(config.tenant_id)
    validate_credentials(credential)
    return ResourceService(ArmClient(credential))


def _build_remover(service: Optional[ResourceService] = None) -> ResourceRemover:
    return ResourceRemover(
        service or _build_service(),
        subscription_marker=config.subscription_marker,
        decommission_group=config.decommission_group,
    )


def _run_teardown(
    targets: List[RemovalTarget],
    source: str,
    subscription_id: Optional[str],
    dry_run: bool,
    force: bool,
    yes: bool,
    service: Optional[ResourceService] = None,
) -> None:
    """Preview or execute a batch teardown and print the result."""
    if not targets:
        console.print("No resources to remove.", style="yellow")
        return

    remover = _build_remover(service)
    runner = TeardownRunner(
        remover,
        AuditStorage(config.audit_path),
        removal_order=config.removal_order,
        cycle_policy=RetryPolicy(REMOVAL_CYCLE_POLICY.interval_seconds, config.max_removal_cycles),
    )

    if dry_run:
        result = runner.preview(targets, source, subscription_id)
        _print_result(result)
        return

    console.print(f"\n⚠️  About to remove {len(targets)} resource(s) from {source}", style="bold yellow")
    if not yes:
        if not typer.confirm("Continue?", default=False):
            console.print("Cancelled.")
            raise typer.Exit(code=0)

    result = runner.execute(
        targets,
        source,
        subscription_id,
        confirmed=True,
        force=force,
        confirm=None if force else _confirm_step,
        tenant_id=config.tenant_id,
    )
    _print_result(result)

    if result.operation.status in (OperationStatus.FAILED, OperationStatus.PARTIAL):
        raise typer.Exit(code=2)


def _confirm_step(prompt: str) -> bool:
    return typer.confirm(prompt, default=False)


def _print_report(report: RemovalReport, dry_run: bool) -> None:
    if report.skipped:
        console.print(f"⊘ Skipped {report.resource_id}: {report.skip_reason}", style="yellow")
        return

    table = Table(show_header=True, title=f"{report.recipe}: {report.resource_type}")
    table.add_column("Action", style="cyan")
    table.add_column("Target", overflow="fold")
    table.add_column("Status")

    for action in report.actions:
        table.add_row(action.action, action.target, action.status.value)

    console.print(table)

    if dry_run:
        console.print("\nDry run - nothing was changed.", style="cyan")
    elif any(a.status == ActionStatus.DECLINED for a in report.actions):
        console.print(f"\n⚠️  Some steps were declined; {report.resource_id} may still exist", style="yellow")
    else:
        console.print(f"\n✓ Removed {report.resource_id}", style="green")


def _print_result(result: TeardownResult) -> None:
    operation = result.operation

    table = Table(show_header=True, title=f"Teardown {operation.operation_id} ({operation.mode.value})")
    table.add_column("Resource", style="cyan", overflow="fold")
    table.add_column("Recipe")
    table.add_column("Status")
    table.add_column("Details", overflow="fold")

    for record in result.records:
        table.add_row(
            record.resource_id,
            record.recipe or "",
            f"[{STATUS_STYLES[record.status]}]{record.status.value}[/]",
            _record_details(record),
        )

    console.print(table)
    console.print("\nSummary:")
    console.print(f"  Status: {operation.status.value}")
    console.print(f"  Resources: {operation.total_resources}")
    console.print(f"  Succeeded: {operation.succeeded_count}")
    console.print(f"  Failed: {operation.failed_count}")
    console.print(f"  Skipped: {operation.skipped_count}")


def _record_details(record: DeletionRecord) -> str:
    if record.status == DeletionStatus.FAILED:
        return f"{record.error_code}: {record.error_message} (step: {record.failed_step})"
    if record.status == DeletionStatus.SKIPPED:
        return record.skip_reason or ""
    return "\n".join(record.actions)


def _parse_date(value: Optional[str], option: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        console.print(f"✗ Invalid {option} date '{value}', expected YYYY-MM-DD", style="bold red")
        raise typer.Exit(code=1)


def _subscription_of(scope: str) -> Optional[str]:
    parts = scope.split("/")
    if len(parts) > 2 and parts[1].lower() == "subscriptions":
        return parts[2]
    return None


def cli_main():
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    cli_main()
