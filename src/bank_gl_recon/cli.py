"""
Command-line interface for the bank / ledger reconciliation engine.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional
import logging
import sys

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import AppConfig, generate_default_config, load_config
from .matching.scoring import score_breakdown
from .models.records import DateRange, MatchStatus
from .reconciler import AutoReconcileResult, Reconciler
from .storage.dataset import load_dataset, save_dataset
from .utils.exceptions import ReconciliationError
from .utils.logging_config import level_from_name, setup_logging

console = Console()

STATUS_STYLES = {
    MatchStatus.COMMITTED: "green",
    MatchStatus.SUGGESTED: "yellow",
    MatchStatus.CONFLICT: "red",
}


@click.group()
@click.version_option(version=__version__)
def main():
    """Bank transaction / accounting ledger reconciliation tool."""
    pass


def _setup(config_path: Optional[Path], verbose: bool) -> AppConfig:
    app_config = load_config(config_path)
    level = logging.DEBUG if verbose else level_from_name(app_config.logging.level)
    log_file = Path(app_config.logging.file) if app_config.logging.file else None
    setup_logging(level, app_config.logging.format, log_file=log_file)
    return app_config


def _date_range(
    start: Optional[datetime], end: Optional[datetime]
) -> Optional[DateRange]:
    if start is None and end is None:
        return None
    if start is None or end is None:
        raise click.UsageError("--start and --end must be given together")
    return DateRange(start.date(), end.date())


@main.command()
@click.argument("dataset", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--company", "company_id", required=True, help="Company id")
@click.option("--account", "bank_account_id", required=True, help="Bank account id")
@click.option("--start", type=click.DateTime(formats=["%Y-%m-%d"]), help="First date (inclusive)")
@click.option("--end", type=click.DateTime(formats=["%Y-%m-%d"]), help="Last date (inclusive)")
@click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file (YAML)",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(file_okay=False, path_type=Path),
    help="Write the updated dataset here instead of in place",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("--dry-run", is_flag=True, help="Show matches without committing anything")
def reconcile(
    dataset: Path,
    company_id: str,
    bank_account_id: str,
    start: Optional[datetime],
    end: Optional[datetime],
    config: Optional[Path],
    output: Optional[Path],
    verbose: bool,
    dry_run: bool,
):
    """
    Auto-reconcile a bank account against the company's ledger entries.

    DATASET: Directory with transactions.csv, entries.csv and optional rules.csv
    """
    app_config = _setup(config, verbose)

    try:
        date_range = _date_range(start, end)
        store = load_dataset(dataset, configs={company_id: app_config.for_company(company_id)})
        reconciler = Reconciler(store)
        result = reconciler.auto_reconcile(
            company_id, bank_account_id, date_range, commit=not dry_run
        )

        _display_matches(result)
        _display_summary(result)

        if dry_run:
            console.print("\n[yellow]Dry run - nothing committed[/yellow]")
            return

        target = output or dataset
        save_dataset(store, target)
        console.print(f"\n[green]Dataset updated: {target}[/green]")

    except (ReconciliationError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        if verbose:
            console.print_exception()
        sys.exit(1)


@main.command()
@click.argument("dataset", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("reconciliation_id")
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
def undo(dataset: Path, reconciliation_id: str, config: Optional[Path], verbose: bool):
    """
    Undo a reconciliation and return both records to pending.

    DATASET: Dataset directory
    RECONCILIATION_ID: Reconciliation to undo
    """
    _setup(config, verbose)

    try:
        store = load_dataset(dataset)
        result = Reconciler(store).undo_reconciliation(reconciliation_id)
        result.raise_for_status()
        save_dataset(store, dataset)
        console.print(f"[green]Reconciliation {reconciliation_id} undone[/green]")

    except ReconciliationError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


@main.command()
@click.argument("dataset", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("transaction_id")
@click.argument("entry_id")
@click.option("--company", "company_id", required=True, help="Company id")
@click.option("--notes", help="Free-text note stored with the reconciliation")
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
def manual(
    dataset: Path,
    transaction_id: str,
    entry_id: str,
    company_id: str,
    notes: Optional[str],
    config: Optional[Path],
):
    """
    Reconcile one transaction with one entry by hand.

    DATASET: Dataset directory
    """
    app_config = _setup(config, False)

    try:
        store = load_dataset(dataset, configs={company_id: app_config.for_company(company_id)})
        match = Reconciler(store).reconcile_manually(company_id, transaction_id, entry_id, notes)
        save_dataset(store, dataset)
        console.print(
            f"[green]Reconciled {transaction_id} <-> {entry_id} "
            f"(confidence {match.confidence}%, id {match.reconciliation_id})[/green]"
        )

    except ReconciliationError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


@main.command()
@click.argument("dataset", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("transaction_id")
@click.argument("entry_id")
@click.option("--company", "company_id", help="Company whose parameters to use")
@click.option("-c", "--config", type=click.Path(exists=True, path_type=Path))
def score(
    dataset: Path,
    transaction_id: str,
    entry_id: str,
    company_id: Optional[str],
    config: Optional[Path],
):
    """
    Explain the confidence score of one transaction/entry pair.

    DATASET: Dataset directory
    """
    app_config = _setup(config, False)

    try:
        params = app_config.for_company(company_id) if company_id else app_config.reconciliation
        store = load_dataset(dataset)
        transaction = store.get_transaction(transaction_id)
        entry = store.get_entry(entry_id)
        if transaction is None or entry is None:
            raise ReconciliationError(f"Unknown transaction or entry: {transaction_id}, {entry_id}")

        breakdown = score_breakdown(transaction, entry, params)

        table = Table(title=f"Score: {transaction_id} vs {entry_id}")
        table.add_column("Factor", style="cyan")
        table.add_column("Points", justify="right")
        table.add_column("Detail")

        if breakdown.vetoed:
            table.add_row("Veto", "0", breakdown.veto_reason or "")
        else:
            table.add_row(
                "Amount",
                str(breakdown.amount_points),
                f"{breakdown.amount_difference * 100:.2f}% difference",
            )
            table.add_row(
                "Date",
                str(breakdown.date_points),
                f"{breakdown.date_difference_days} day(s) apart",
            )
            table.add_row("Text", str(breakdown.text_points), breakdown.text_reason)
        table.add_row("Total", str(breakdown.total), "")

        console.print(table)

    except ReconciliationError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


@main.command("list")
@click.argument("dataset", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--account", "bank_account_id", help="Only reconciliations of this bank account")
def list_reconciliations(dataset: Path, bank_account_id: Optional[str]):
    """
    List committed reconciliations.

    DATASET: Dataset directory
    """
    try:
        store = load_dataset(dataset)
    except ReconciliationError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    reconciliations = store.list_reconciliations(bank_account_id)

    table = Table(title="Reconciliations")
    table.add_column("Id")
    table.add_column("Transaction")
    table.add_column("Entry")
    table.add_column("Method")
    table.add_column("Confidence", justify="right")
    table.add_column("Created")

    for reconciliation in reconciliations:
        table.add_row(
            reconciliation.id,
            reconciliation.transaction_id,
            reconciliation.entry_id,
            reconciliation.method.value,
            f"{reconciliation.confidence_score}%",
            reconciliation.created_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)
    console.print(f"\nTotal reconciliations: {len(reconciliations)}")


@main.command("init-config")
@click.option(
    "-o", "--output", type=click.Path(path_type=Path), default=Path("config.yaml")
)
def init_config(output: Path):
    """Generate a sample configuration file."""
    generate_default_config(output)
    console.print(f"[green]Configuration file generated: {output}[/green]")


def _display_matches(result: AutoReconcileResult) -> None:
    """Display matches found by a run."""
    table = Table(title="Matches")
    table.add_column("Transaction")
    table.add_column("Entry")
    table.add_column("Method")
    table.add_column("Rule")
    table.add_column("Confidence", justify="right")
    table.add_column("Status")

    for match in result.matches:
        style = STATUS_STYLES.get(match.status, "")
        table.add_row(
            match.transaction_id,
            match.entry_id,
            match.method.value,
            match.rule_id or "-",
            f"{match.confidence}%",
            f"[{style}]{match.status.value}[/{style}]",
        )

    console.print(table)


def _display_summary(result: AutoReconcileResult) -> None:
    """Display reconciliation summary in console."""
    summary = result.summary()

    table = Table(title="Reconciliation Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Pending Transactions", str(summary["transactions"]))
    table.add_row("Pending Entries", str(summary["entries"]))
    table.add_row("Matches", str(summary["matches"]))
    table.add_row("Committed", str(summary["committed"]))
    table.add_row("Suggested", str(summary["suggested"]))
    table.add_row("Conflicts", str(summary["conflict"]))
    table.add_row("Exact (reference)", str(summary["method_exact"]))
    table.add_row("Exact (amount + date)", str(summary["method_amount_date"]))
    table.add_row("Rule", str(summary["method_rule"]))
    table.add_row("Processing Time", f"{result.processing_time_seconds:.2f}s")

    console.print(table)


if __name__ == "__main__":
    main()
