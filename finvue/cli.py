# finvue/cli.py
import logging
import os

import click
from dotenv import load_dotenv

from finvue.aggregation import build_dashboard, filter_transactions
from finvue.ai import get_insights, parse_transaction
from finvue.config import load_config
from finvue.core.currency import format_amount
from finvue.core.models import (
    SUPPORTED_CURRENCIES,
    PulseFrequency,
    TransactionType,
    ValidationError,
)
from finvue.manual import load_manual_transactions
from finvue.outputs import export_filter, get_output
from finvue.storage import JsonFileStorage
from finvue.store import TransactionStore
from finvue.utils import month_bounds

logger = logging.getLogger(__name__)

TYPES = [t.value for t in TransactionType]
FREQUENCIES = [f.value for f in PulseFrequency]
CURRENCY_CODES = [c.code for c in SUPPORTED_CURRENCIES]


def _store(ctx) -> TransactionStore:
    return ctx.obj['store']


def _money(store, value):
    return format_amount(value, store.config.currency)


@click.group()
@click.option(
    '--config', 'config_path',
    default='finvue.yaml',
    type=click.Path(dir_okay=False),
    help='Path to finvue.yaml (defaults are used when it does not exist)'
)
@click.option(
    '--data-dir', 'data_dir',
    default=None,
    type=click.Path(file_okay=False),
    help='Directory holding the transaction and settings JSON files'
)
@click.option(
    '--env-file', 'env_file',
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help='Optional .env file containing API tokens for AI providers'
)
@click.option(
    '--today', 'today',
    default=None,
    type=click.DateTime(formats=['%Y-%m-%d']),
    hidden=True,
    help='Override the date used for pulse synchronization'
)
@click.pass_context
def main(ctx, config_path, data_dir, env_file, today):
    """
    Track income and expenses across currencies. Recurring pulses that fell
    due since the last run are materialized before any command executes.
    """
    if env_file:
        load_dotenv(env_file)
    logging.basicConfig(level=os.getenv("FINVUE_LOG_LEVEL", "WARNING").upper())

    cfg = load_config(config_path)
    storage = JsonFileStorage(data_dir or cfg['data_dir'])
    store = TransactionStore(storage)
    result = store.synchronize_pulses(today.date() if today else None)
    if result.modified:
        click.echo(
            f"Materialized {len(result.materialized)} pulse transaction(s).", err=True
        )
    ctx.obj = {'config': cfg, 'store': store, 'sync': result}


@main.command()
@click.option('--amount', default=None, help='Amount (non-negative)')
@click.option('--category', default=None)
@click.option('--type', 'tx_type', default='expense', type=click.Choice(TYPES))
@click.option('--currency', default=None, type=click.Choice(CURRENCY_CODES))
@click.option('--date', 'date_value', default=None, help='YYYY-MM-DD, defaults to today')
@click.option('--description', default='')
@click.option('--text', default=None, help='Describe the transaction in plain words instead')
@click.pass_context
def add(ctx, amount, category, tx_type, currency, date_value, description, text):
    """Record a transaction."""
    store = _store(ctx)
    try:
        if text:
            parsed = parse_transaction(text, store.config.categories)
            if parsed is None:
                raise click.ClickException("Could not understand that transaction.")
            tx = store.apply_parsed(parsed)
        else:
            tx = store.add_transaction(
                amount=amount,
                category=category,
                tx_type=tx_type,
                currency_code=currency,
                date_value=date_value,
                description=description,
            )
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"Added {tx.id}: {tx.date} {tx.type.value} {tx.amount:g} {tx.currency_code} ({tx.category})")


@main.command()
@click.argument('tx_id')
@click.option('--amount', default=None)
@click.option('--category', default=None)
@click.option('--type', 'tx_type', default=None, type=click.Choice(TYPES))
@click.option('--currency', default=None, type=click.Choice(CURRENCY_CODES))
@click.option('--date', 'date_value', default=None)
@click.option('--description', default=None)
@click.pass_context
def edit(ctx, tx_id, amount, category, tx_type, currency, date_value, description):
    """Change fields of an existing transaction."""
    store = _store(ctx)
    try:
        current = store.get_transaction(tx_id)
    except KeyError:
        raise click.ClickException(f"No transaction with id {tx_id}.")
    changes = {
        'amount': amount, 'category': category, 'type': tx_type,
        'currency_code': currency, 'date': date_value, 'description': description,
    }
    for name, value in changes.items():
        if value is not None:
            setattr(current, name, value)
    try:
        tx = store.update_transaction(current)
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"Updated {tx.id}.")


@main.command()
@click.argument('tx_id')
@click.pass_context
def delete(ctx, tx_id):
    """Delete a transaction."""
    if not _store(ctx).delete_transaction(tx_id):
        raise click.ClickException(f"No transaction with id {tx_id}.")
    click.echo(f"Deleted {tx_id}.")


@main.command('list')
@click.option('--type', 'tx_type', default=None, type=click.Choice(TYPES))
@click.option('--search', default=None)
@click.option('--start', default=None, help='Inclusive start date YYYY-MM-DD')
@click.option('--end', default=None, help='Inclusive end date YYYY-MM-DD')
@click.pass_context
def list_cmd(ctx, tx_type, search, start, end):
    """Show transactions, newest first."""
    txs = filter_transactions(_store(ctx).transactions, tx_type, search, start, end)
    if not txs:
        click.echo("No transactions found.")
        return
    for tx in txs:
        sign = '+' if tx.type is TransactionType.INCOME else '-'
        click.echo(
            f"{tx.id}  {tx.date}  {sign}{tx.amount:,.2f} {tx.currency_code:<3}  "
            f"{tx.category:<14} {tx.description}"
        )


@main.command()
@click.option('--start', default=None)
@click.option('--end', default=None)
@click.option('--month', default=None, help='Shortcut for a YYYY-MM range')
@click.pass_context
def summary(ctx, start, end, month):
    """Totals, category spend, budgets and recurring load."""
    store = _store(ctx)
    if month:
        try:
            start, end = month_bounds(month)
        except ValueError:
            raise click.ClickException("--month must be YYYY-MM")
    dash = build_dashboard(store.transactions, store.config, start, end)
    label = 'Filtered Net' if (start or end) else 'Global Net'
    click.echo(f"{label}:      {_money(store, dash.totals.balance)}")
    click.echo(f"Income:          {_money(store, dash.totals.income)}")
    click.echo(f"Expense:         {_money(store, dash.totals.expense)}")
    click.echo(f"Savings rate:    {dash.totals.savings_rate:.1f}%")
    click.echo(f"Global balance:  {_money(store, dash.global_balance)}")

    if dash.breakdown:
        click.echo("\nSpending by category:")
        for cat, total in sorted(dash.breakdown.items(), key=lambda kv: kv[1], reverse=True):
            click.echo(f"  {cat:<14} {_money(store, total)}")

    if dash.budgets:
        click.echo("\nBudgets:")
        for b in dash.budgets:
            flag = ' OVER' if b.over_limit else ''
            click.echo(
                f"  {b.category:<14} {_money(store, b.actual)} / "
                f"{_money(store, b.limit)} ({b.percent:.0f}%){flag}"
            )

    click.echo(
        f"\nRecurring (monthly est.): +{_money(store, dash.projection.income)} "
        f"-{_money(store, dash.projection.expense)} "
        f"({dash.pulse_counts.get('income', 0)} income / "
        f"{dash.pulse_counts.get('expense', 0)} expense pulses)"
    )


@main.command()
@click.pass_context
def insights(ctx):
    """Ask the AI advisor for commentary on all transactions."""
    store = _store(ctx)
    click.echo(get_insights(store.transactions, store.config.currency))


@main.command()
@click.option('--output', 'output_format', default='csv', type=click.Choice(['csv', 'excel']))
@click.option('--start', default=None)
@click.option('--end', default=None)
@click.option('--type', 'tx_type', default='all', type=click.Choice(['all'] + TYPES))
@click.option('--path', 'out_path', default=None, type=click.Path(dir_okay=False))
@click.pass_context
def export(ctx, output_format, start, end, tx_type, out_path):
    """Export transactions to CSV or Excel."""
    store = _store(ctx)
    txs = export_filter(store.transactions, start, end, tx_type)
    if not txs:
        raise click.ClickException("No transactions match the export filters.")
    cfg = dict(ctx.obj['config'], currency=store.config.currency.code)
    get_output(output_format, cfg).append(txs, out_path)


@main.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def import_cmd(ctx, path):
    """Import transactions from a YAML file."""
    store = _store(ctx)
    config = store.config
    try:
        txs = load_manual_transactions(path, config.categories, config.currency.code)
    except ValueError as e:
        raise click.ClickException(f"Error loading manual transactions: {e}")
    added = store.import_transactions(txs)
    click.echo(f"Imported {len(added)} of {len(txs)} transaction(s).")


@main.command()
@click.argument('code', required=False, type=click.Choice(CURRENCY_CODES))
@click.pass_context
def currency(ctx, code):
    """Show or set the preferred display currency."""
    store = _store(ctx)
    if code:
        store.set_currency(code)
    c = store.config.currency
    click.echo(f"{c.code} ({c.name})")


@main.command()
@click.pass_context
def sync(ctx):
    """Materialize due pulses (this runs on every startup anyway)."""
    result = ctx.obj['sync']
    click.echo(f"{len(result.materialized)} transaction(s) materialized.")


@main.group()
def category():
    """Manage income and expense categories."""


@category.command('add')
@click.argument('tx_type', type=click.Choice(TYPES))
@click.argument('name')
@click.pass_context
def category_add(ctx, tx_type, name):
    try:
        _store(ctx).add_category(tx_type, name)
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"Added {tx_type} category {name.strip()}.")


@category.command('remove')
@click.argument('tx_type', type=click.Choice(TYPES))
@click.argument('name')
@click.pass_context
def category_remove(ctx, tx_type, name):
    try:
        _store(ctx).remove_category(tx_type, name)
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"Removed {tx_type} category {name}.")


@category.command('list')
@click.pass_context
def category_list(ctx):
    cats = _store(ctx).config.categories
    click.echo("expense: " + ", ".join(cats.expense))
    click.echo("income:  " + ", ".join(cats.income))


@main.group()
def budget():
    """Manage monthly category budgets."""


@budget.command('set')
@click.argument('category_name')
@click.argument('limit')
@click.pass_context
def budget_set(ctx, category_name, limit):
    store = _store(ctx)
    try:
        store.set_budget(category_name, limit)
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"Budget for {category_name} set to {_money(store, float(limit))}.")


@budget.command('remove')
@click.argument('category_name')
@click.pass_context
def budget_remove(ctx, category_name):
    _store(ctx).remove_budget(category_name)
    click.echo(f"Removed budget for {category_name}.")


@main.group()
def pulse():
    """Manage recurring pulses."""


@pulse.command('add')
@click.option('--description', required=True)
@click.option('--amount', required=True)
@click.option('--category', required=True)
@click.option('--type', 'tx_type', default='expense', type=click.Choice(TYPES))
@click.option('--frequency', default='monthly', type=click.Choice(FREQUENCIES))
@click.option('--start', 'start_date', default=None, help='First due date, defaults to today')
@click.option('--currency', default=None, type=click.Choice(CURRENCY_CODES))
@click.pass_context
def pulse_add(ctx, description, amount, category, tx_type, frequency, start_date, currency):
    store = _store(ctx)
    try:
        p = store.add_pulse(
            description=description,
            amount=amount,
            category=category,
            tx_type=tx_type,
            frequency=frequency,
            start_date=start_date,
            currency_code=currency,
        )
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"Added pulse {p.id}, first due {p.next_pulse_date}.")


@pulse.command('remove')
@click.argument('pulse_id')
@click.pass_context
def pulse_remove(ctx, pulse_id):
    if not _store(ctx).remove_pulse(pulse_id):
        raise click.ClickException(f"No pulse with id {pulse_id}.")
    click.echo(f"Removed pulse {pulse_id}.")


@pulse.command('list')
@click.pass_context
def pulse_list(ctx):
    store = _store(ctx)
    for p in store.config.recurring_pulses:
        click.echo(f"{p.id}  next {p.next_pulse_date}  {p.frequency.value:<7} {p.description}")


if __name__ == '__main__':
    main()
