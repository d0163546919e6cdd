"""Command line interface for PocketLedger."""

from __future__ import annotations

import click

from .config import BaseConfig
from .constants.categories import category_label
from .context import AppContext, create_app_context
from .errors import LedgerError
from .logging_config import setup_logging
from .money import format_money


def _ctx(click_ctx: click.Context) -> AppContext:
    app_ctx = click_ctx.obj
    if app_ctx is None:
        config = BaseConfig()
        setup_logging(config)
        app_ctx = create_app_context(config)
        click_ctx.obj = app_ctx
        click_ctx.call_on_close(app_ctx.dispose)
    return app_ctx


def _run(operation):
    """Invoke *operation*, turning ledger errors into a clean exit."""
    try:
        return operation()
    except LedgerError as exc:
        raise click.ClickException(exc.message) from exc


@click.group()
@click.option(
    "--user",
    "user_id",
    envvar="POCKETLEDGER_USER",
    required=True,
    help="Opaque user id supplied by the identity provider.",
)
@click.pass_context
def cli(click_ctx: click.Context, user_id: str) -> None:
    """Manage a personal ledger and scheduled payments."""

    click_ctx.meta["user_id"] = user_id


@cli.command("balance")
@click.pass_context
def balance_cmd(click_ctx: click.Context) -> None:
    """Show the current balance."""

    app_ctx = _ctx(click_ctx)
    balance = _run(lambda: app_ctx.get_balance(click_ctx.meta["user_id"]))
    click.echo(f"Balance: {format_money(balance)}")


@cli.command("deposit")
@click.argument("amount")
@click.option("--note", default="", help="Optional note for the ledger entry.")
@click.pass_context
def deposit_cmd(click_ctx: click.Context, amount: str, note: str) -> None:
    """Add funds to the balance."""

    app_ctx = _ctx(click_ctx)
    entry, balance = _run(lambda: app_ctx.deposit(click_ctx.meta["user_id"], amount, note=note))
    click.echo(f"Deposited {format_money(entry.amount)}. Balance: {format_money(balance)}")


@cli.command("record")
@click.argument("title")
@click.argument("amount")
@click.option(
    "--type",
    "transaction_type",
    type=click.Choice(["expense", "income"]),
    default="expense",
    show_default=True,
)
@click.option("--category", default="general", show_default=True)
@click.option("--date", "occurred_at", default=None, help="YYYY-MM-DD; defaults to today.")
@click.option("--description", default="")
@click.pass_context
def record_cmd(
    click_ctx: click.Context,
    title: str,
    amount: str,
    transaction_type: str,
    category: str,
    occurred_at: str | None,
    description: str,
) -> None:
    """Record a completed transaction."""

    app_ctx = _ctx(click_ctx)
    entry, balance = _run(
        lambda: app_ctx.record_transaction(
            click_ctx.meta["user_id"],
            title=title,
            amount=amount,
            occurred_at=occurred_at,
            category=category,
            description=description,
            transaction_type=transaction_type,
        )
    )
    click.echo(f"Recorded #{entry.id} {format_money(entry.amount)}. Balance: {format_money(balance)}")


@cli.command("schedule")
@click.argument("title")
@click.argument("amount")
@click.option("--due", "due_at", required=True, help="Due date, YYYY-MM-DD.")
@click.option("--category", required=True)
@click.option("--description", default="")
@click.pass_context
def schedule_cmd(
    click_ctx: click.Context,
    title: str,
    amount: str,
    due_at: str,
    category: str,
    description: str,
) -> None:
    """Schedule a future payment."""

    app_ctx = _ctx(click_ctx)
    obligation = _run(
        lambda: app_ctx.schedule_obligation(
            click_ctx.meta["user_id"],
            title=title,
            amount=amount,
            due_at=due_at,
            category=category,
            description=description,
        )
    )
    click.echo(f"Scheduled #{obligation.id} {obligation.title} due {obligation.due_at.isoformat()}")


@cli.command("settle")
@click.argument("obligation_id", type=int)
@click.pass_context
def settle_cmd(click_ctx: click.Context, obligation_id: int) -> None:
    """Pay a scheduled payment from the balance."""

    app_ctx = _ctx(click_ctx)
    result = _run(lambda: app_ctx.settle(click_ctx.meta["user_id"], obligation_id))
    click.echo(
        f"Paid #{result.obligation_id} as transaction #{result.transaction_id}. "
        f"Balance: {format_money(result.balance)}"
    )


@cli.command("recent")
@click.option("--limit", type=int, default=None)
@click.pass_context
def recent_cmd(click_ctx: click.Context, limit: int | None) -> None:
    """List recent transactions."""

    app_ctx = _ctx(click_ctx)
    rows = _run(lambda: app_ctx.recent_transactions(click_ctx.meta["user_id"], limit))
    if not rows:
        click.echo("No transactions yet.")
        return
    for row in rows:
        click.echo(
            f"{row.occurred_at.isoformat()}  {format_money(row.amount):>12}  {row.title}  "
            f"({category_label(row.category)})"
        )


@cli.command("upcoming")
@click.pass_context
def upcoming_cmd(click_ctx: click.Context) -> None:
    """List unpaid scheduled payments, earliest first."""

    app_ctx = _ctx(click_ctx)
    items = _run(lambda: app_ctx.upcoming_with_urgency(click_ctx.meta["user_id"]))
    if not items:
        click.echo("No upcoming payments.")
        return
    for item in items:
        obligation = item.obligation
        click.echo(
            f"#{obligation.id}  {obligation.due_at.isoformat()}  {format_money(item.amount):>12}  "
            f"{obligation.title}  [{item.due_label}, {item.urgency}]"
        )


@cli.command("due-today")
@click.pass_context
def due_today_cmd(click_ctx: click.Context) -> None:
    """Show payments due today."""

    app_ctx = _ctx(click_ctx)
    summary = _run(lambda: app_ctx.reminder_summary(click_ctx.meta["user_id"]))
    click.echo(summary.message)
    for obligation in summary.items:
        click.echo(f"#{obligation.id}  {format_money(obligation.amount):>12}  {obligation.title}")


def main() -> None:  # pragma: no cover - console entry point
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
