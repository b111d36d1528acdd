# Overview: Flask CLI commands for running reports over a snapshot file.

# backend/posfin/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to posfin (PowerShell: $env:FLASK_APP="posfin").
# - Use: python -m flask <group> <command> [options]
#
# Reports:
# - python -m flask reports summary snapshot.json --range 30d --mode normal
#   Print the headline metrics for the range (add --json for raw output).
# - python -m flask reports summary snapshot.json --range custom --start 2024-01-01 --end 2024-01-31
#   Custom inclusive range.
# - python -m flask reports series snapshot.json --range 1y
#   Print the daily/monthly revenue and expense series.
# - python -m flask reports series snapshot.json --day 2024-01-15
#   Hourly drill-down for one day.
# - python -m flask reports export snapshot.json --range 30d
#   label,value rows for an external writer.
#
# The snapshot file holds {"orders": [...], "refunds": [...], ...} as sent
# to the HTTP endpoints; "now" in the file pins the reference time.

import json

import click
from flask import current_app
from flask.cli import with_appcontext

from .services import reporting_service
from .validation import ValidationError, parse_report_params


def _report_options(func):
    func = click.option('--end', 'custom_end', default=None, help='Custom range end (YYYY-MM-DD)')(func)
    func = click.option('--start', 'custom_start', default=None, help='Custom range start (YYYY-MM-DD)')(func)
    func = click.option('--mode', 'sale_mode', default=None, help='Sale mode: normal or direct')(func)
    func = click.option('--range', 'time_range', default=None, help='today, 7d, 30d, 90d, 1y, all or custom')(func)
    func = click.argument('snapshot', type=click.File('r', encoding='utf-8'))(func)
    return func


def _load_context(snapshot, time_range, sale_mode, custom_start, custom_end):
    try:
        payload = json.load(snapshot)
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"Snapshot is not valid JSON: {exc}")
    if not isinstance(payload, dict):
        raise click.ClickException("Snapshot must be a JSON object")

    payload.update({
        key: value
        for key, value in {
            "time_range": time_range,
            "sale_mode": sale_mode,
            "custom_start": custom_start,
            "custom_end": custom_end,
        }.items()
        if value is not None
    })

    config = current_app.config
    try:
        engine = reporting_service.build_engine(payload, config)
        params = parse_report_params(
            payload,
            default_time_range=config["DEFAULT_TIME_RANGE"],
            default_sale_mode=config["DEFAULT_SALE_MODE"],
        )
        return engine, reporting_service.context_for(engine, params)
    except (ValidationError, reporting_service.ReportError) as exc:
        raise click.ClickException(str(exc))


@click.group('reports')
def reports_group():
    """Financial report commands."""


@reports_group.command('summary')
@_report_options
@click.option('--json', 'as_json', is_flag=True, help='Print the raw metrics bundle')
@with_appcontext
def summary_cli(snapshot, time_range, sale_mode, custom_start, custom_end, as_json):
    """Headline revenue, COGS and profit for the range."""
    engine, ctx = _load_context(snapshot, time_range, sale_mode, custom_start, custom_end)
    summary = reporting_service.financial_summary(engine, ctx)

    if as_json:
        click.echo(json.dumps(summary, indent=2))
        return

    click.echo("\n" + "="*60)
    click.echo(f"Range: {summary['range']['start']} -> {summary['range']['end']}  Mode: {summary['sale_mode']}")
    click.echo("="*60)
    for row in reporting_service.export_rows(summary):
        click.echo(f"{row['label']:<30} {row['value']:>20.2f}")
    click.echo("="*60 + "\n")


@reports_group.command('series')
@_report_options
@click.option('--day', default=None, help='Hourly drill-down day (YYYY-MM-DD)')
@with_appcontext
def series_cli(snapshot, time_range, sale_mode, custom_start, custom_end, day):
    """Revenue/expense series (daily, monthly, or hourly with --day)."""
    _, ctx = _load_context(snapshot, time_range, sale_mode, custom_start, custom_end)
    try:
        series = reporting_service.hourly_series(ctx, day) if day else reporting_service.time_series(ctx)
    except reporting_service.ReportError as exc:
        raise click.ClickException(str(exc))

    if not series["keys"]:
        click.echo("No buckets for this range.")
        return

    click.echo(f"{'Bucket':<12} {'Revenue':>14} {'Expense':>14}")
    for label, revenue, expense in zip(series["labels"], series["revenue"], series["expense"]):
        click.echo(f"{label:<12} {revenue:>14.2f} {expense:>14.2f}")


@reports_group.command('export')
@_report_options
@with_appcontext
def export_cli(snapshot, time_range, sale_mode, custom_start, custom_end):
    """label,value rows of the metrics bundle."""
    engine, ctx = _load_context(snapshot, time_range, sale_mode, custom_start, custom_end)
    summary = reporting_service.financial_summary(engine, ctx)
    click.echo("label,value")
    for row in reporting_service.export_rows(summary):
        click.echo(f"{row['label']},{row['value']}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(reports_group)
