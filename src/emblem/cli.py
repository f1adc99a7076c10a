"""Command line interface for the Emblem ledger.

Usage:
    emblem-ledger replay events.jsonl --store ./state
    emblem-ledger check --store ./state
    emblem-ledger export --store ./state --csv positions.csv --json state.json
"""

import logging
from pathlib import Path

import click

from .config.loader import load_config
from .engine.errors import LedgerError
from .replay.runner import ReplayRunner, iter_events
from .reporting.export import export_positions_csv, export_state_json
from .store.backend import FileStore
from .validation.sanity_checks import LedgerChecker


store_option = click.option(
    '--store', 'store_dir',
    type=click.Path(file_okay=False, path_type=Path),
    required=True,
    help='Directory holding the entity store',
)


@click.group()
@click.option(
    '--log-level',
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
    default='INFO',
    help='Logging verbosity',
)
def main(log_level):
    """Incremental curation ledger and badge award engine."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


@main.command()
@click.argument('events', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@store_option
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False), default=None,
              help='YAML configuration (defaults to the packaged defaults.yaml)')
def replay(events, store_dir, config_path):
    """Replay a JSON-lines event file into the store."""
    config = load_config(config_path)
    try:
        runner = ReplayRunner(config, FileStore(store_dir))
        result = runner.run(iter_events(events))
    except (LedgerError, ValueError, KeyError) as e:
        raise click.ClickException(f"Replay failed: {e}")

    click.echo(f"Config hash: {result.config_hash}")
    click.echo(f"Events processed: {result.events_processed}")
    for event_type, count in sorted(result.event_counts.items()):
        click.echo(f"  {event_type}: {count}")
    stats = result.stats
    click.echo(
        f"Curators: {stats.curator_count}  Publishers: {stats.publisher_count}  "
        f"Voters: {stats.voter_count}  Awards: {stats.award_count}"
    )


@main.command()
@store_option
def check(store_dir):
    """Run consistency checks over the store."""
    try:
        warnings = LedgerChecker(FileStore(store_dir)).run_all()
    except LedgerError as e:
        raise click.ClickException(str(e))

    if not warnings:
        click.echo("No issues found")
        return
    for warning in warnings:
        line = f"[{warning.severity}] {warning.category}: {warning.message}"
        if warning.details:
            line += f" ({warning.details})"
        click.echo(line)
    if any(warning.severity == "error" for warning in warnings):
        raise SystemExit(1)


@main.command()
@store_option
@click.option('--csv', 'csv_path', type=click.Path(dir_okay=False), default=None, help='Positions CSV output')
@click.option('--json', 'json_path', type=click.Path(dir_okay=False), default=None, help='Stats/accounts/awards JSON output')
def export(store_dir, csv_path, json_path):
    """Export positions and award state."""
    if csv_path is None and json_path is None:
        raise click.UsageError("Give at least one of --csv or --json")
    store = FileStore(store_dir)
    try:
        if csv_path:
            export_positions_csv(store, csv_path)
            click.echo(f"Wrote {csv_path}")
        if json_path:
            export_state_json(store, json_path)
            click.echo(f"Wrote {json_path}")
    except LedgerError as e:
        raise click.ClickException(str(e))


if __name__ == '__main__':
    main()
