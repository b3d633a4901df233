# Overview: Flask CLI command groups for accounts, ledger checks, backups and quotations.

# backend/shopledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Apply migrations: python -m flask db upgrade
# - Use: python -m flask <group> <command> [options]
#
# Accounts:
# - python -m flask accounts create --name "Corner Shop" [--code SHOP1]
#   Create an account with its settings row and walk-in customer.
# - python -m flask accounts list
#   List all accounts with cash balance and document counters.
# - python -m flask accounts reset --account-id 1 --yes
#   Delete all business data, backups and activity for an account.
#
# Ledger:
# - python -m flask ledger reconcile [--account-id 1]
#   Compare stored business cash against the sum of ledger entries.
#
# Backups:
# - python -m flask backups create --account-id 1 [--description "Before stocktake"]
# - python -m flask backups list --account-id 1
# - python -m flask backups restore --account-id 1 --backup-id 7 --yes
# - python -m flask backups run-auto
#   Create automatic backups for every account whose frequency says one is due.
#
# Quotations:
# - python -m flask quotations expire [--account-id 1]
#   Mark Draft/Sent quotations past their valid-till date as Expired.

import click
from flask.cli import with_appcontext

from .currency import format_currency
from .errors import LedgerError
from .extensions import deferred
from .services import (
    account_service,
    backup_service,
    ledger_service,
    quotation_service,
    settings_service,
)


def _account_ids(account_id):
    if account_id is not None:
        return [account_id]
    return [a.id for a in account_service.list_accounts()]


def _drain_deferred():
    still_running = deferred.wait()
    if still_running:
        click.echo(f"WARN  {still_running} deferred task(s) still running")


# =============================================================================
# ACCOUNT COMMANDS
# =============================================================================

@click.group('accounts')
def accounts_group():
    """Account management commands."""


@accounts_group.command('create')
@click.option('--name', required=True, help='Account (shop) name')
@click.option('--code', default=None, help='Short code (unique)')
@with_appcontext
def create_account_cli(name, code):
    """Create a new account."""
    try:
        account = account_service.create_account(name, code)
    except LedgerError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Created account: {account.name} (ID: {account.id}, Code: {account.code or '-'})")


@accounts_group.command('list')
@with_appcontext
def list_accounts_cli():
    """List all accounts."""
    accounts = account_service.list_accounts()
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<28} {'Code':<10} {'Cash':<18} {'Sales':<7} {'Purchases'}")
    click.echo("="*80)
    for account in accounts:
        settings = settings_service.get_settings(account.id)
        cash = format_currency(settings.current_business_cash, settings.currency)
        click.echo(
            f"{account.id:<5} {account.name[:27]:<28} {account.code or '-':<10} {cash:<18} "
            f"{settings.last_sale_numeric_id:<7} {settings.last_purchase_numeric_id}"
        )
    click.echo("="*80 + "\n")


@accounts_group.command('reset')
@click.option('--account-id', type=int, required=True)
@click.option('--yes', is_flag=True, help='Confirm destructive operation')
@with_appcontext
def reset_account_cli(account_id, yes):
    """DESTRUCTIVE: delete all business data for an account."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        return
    try:
        account_service.reset_account_data(account_id)
    except LedgerError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Account {account_id} reset")


# =============================================================================
# LEDGER COMMANDS
# =============================================================================

@click.group('ledger')
def ledger_group():
    """Financial ledger checks."""


@ledger_group.command('reconcile')
@click.option('--account-id', type=int, default=None, help='Limit to one account')
@with_appcontext
def reconcile_cli(account_id):
    """Compare stored cash with the ledger. Exits 1 when any account drifts."""
    drifted = 0
    for aid in _account_ids(account_id):
        result = ledger_service.reconcile_cash(aid)
        if result.is_consistent:
            click.echo(f"PASS Account {aid}: cash {result.stored_balance:.2f} matches ledger")
        else:
            drifted += 1
            click.echo(
                f"FAIL Account {aid}: cash {result.stored_balance:.2f}, "
                f"ledger {result.ledger_total:.2f}, difference {result.difference:.2f}"
            )
    if drifted:
        raise SystemExit(1)


# =============================================================================
# BACKUP COMMANDS
# =============================================================================

@click.group('backups')
def backups_group():
    """Backup and restore commands."""


@backups_group.command('create')
@click.option('--account-id', type=int, required=True)
@click.option('--description', default=None)
@with_appcontext
def create_backup_cli(account_id, description):
    try:
        snapshot = backup_service.create_backup(account_id, description=description)
    except LedgerError as e:
        click.echo(f"FAIL {e.message}")
        return
    _drain_deferred()
    click.echo(f"PASS Created backup {snapshot.backup_key} (ID: {snapshot.id})")


@backups_group.command('list')
@click.option('--account-id', type=int, required=True)
@with_appcontext
def list_backups_cli(account_id):
    snapshots = backup_service.list_backups(account_id)
    if not snapshots:
        click.echo("No backups found.")
        return
    for snapshot in snapshots:
        data = snapshot.to_dict()
        click.echo(
            f"{snapshot.id:<5} {snapshot.backup_key:<40} {snapshot.backup_type:<10} "
            f"{data['created_at']}  products={data['counts'].get('products', 0)} "
            f"sales={data['counts'].get('sales', 0)}"
        )


@backups_group.command('restore')
@click.option('--account-id', type=int, required=True)
@click.option('--backup-id', type=int, required=True)
@click.option('--yes', is_flag=True, help='Confirm destructive operation')
@with_appcontext
def restore_backup_cli(account_id, backup_id, yes):
    """DESTRUCTIVE: replace live data with a snapshot."""
    if not yes:
        click.echo("FAIL Refusing to restore without --yes")
        return
    try:
        counts = backup_service.restore_backup(account_id, backup_id)
    except LedgerError as e:
        click.echo(f"FAIL {e.message}")
        return
    _drain_deferred()
    summary = ", ".join(f"{key}={count}" for key, count in counts.items() if count)
    click.echo(f"PASS Restored backup {backup_id}: {summary or 'empty snapshot'}")


@backups_group.command('run-auto')
@click.option('--account-id', type=int, default=None, help='Limit to one account')
@with_appcontext
def run_auto_backups_cli(account_id):
    """Create automatic backups that are due."""
    created = 0
    for aid in _account_ids(account_id):
        try:
            snapshot = backup_service.run_due_auto_backup(aid)
        except LedgerError as e:
            click.echo(f"FAIL Account {aid}: {e.message}")
            continue
        if snapshot is not None:
            created += 1
            click.echo(f"PASS Account {aid}: created {snapshot.backup_key}")
    _drain_deferred()
    click.echo(f"DONE {created} automatic backup(s) created")


# =============================================================================
# QUOTATION COMMANDS
# =============================================================================

@click.group('quotations')
def quotations_group():
    """Quotation maintenance."""


@quotations_group.command('expire')
@click.option('--account-id', type=int, default=None, help='Limit to one account')
@with_appcontext
def expire_quotations_cli(account_id):
    total = 0
    for aid in _account_ids(account_id):
        expired = quotation_service.expire_overdue_quotations(aid)
        total += len(expired)
        if expired:
            click.echo(f"PASS Account {aid}: expired {len(expired)} quotation(s)")
    _drain_deferred()
    click.echo(f"DONE {total} quotation(s) expired")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(accounts_group)
    app.cli.add_command(ledger_group)
    app.cli.add_command(backups_group)
    app.cli.add_command(quotations_group)
