"""Main CLI entry point."""

import click
from ledgerkeep.config import Settings
from ledgerkeep.database.factories import create_sqlite_database
from ledgerkeep.domain.tree_cache import CategoryTreeCache
from ledgerkeep.logging_config import configure_logging

# Import and register all commands at module level
from ledgerkeep.cli.commands import (
    account,
    vendor,
    category,
    transaction,
    status,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides LEDGERKEEP_DB_PATH environment variable)",
    envvar="LEDGERKEEP_DB_PATH",
)
@click.option(
    "--org",
    default="default",
    show_default=True,
    envvar="LEDGERKEEP_ORG",
    help="Organization whose data the command works on",
)
@click.option(
    "--actor",
    default="cli",
    show_default=True,
    envvar="LEDGERKEEP_ACTOR",
    help="Name recorded in the audit logs for changes",
)
@click.pass_context
def cli(ctx, db_path: str | None, org: str, actor: str):
    """Ledgerkeep - Account ledger bookkeeping.

    Keep account balances consistent with typed transactions, track their
    status from unconfirmed to reconciled, and organize spending in a
    category hierarchy.
    """
    ctx.ensure_object(dict)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        try:
            settings = Settings.from_env()
        except ValueError as e:
            raise click.UsageError(str(e))
        configure_logging(level=settings.log_level)

        db = create_sqlite_database(database_path=db_path, settings=settings)
        db.connect()
        db.initialize_schema()
        ctx.call_on_close(db.disconnect)
        ctx.obj["db"] = db
        ctx.obj["org"] = org
        ctx.obj["actor"] = actor
        ctx.obj["tree_cache"] = CategoryTreeCache(
            ttl_seconds=settings.tree_cache_ttl, max_entries=settings.tree_cache_size
        )


# Register all commands
account.register_commands(cli)
vendor.register_commands(cli)
category.register_commands(cli)
transaction.register_commands(cli)
status.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
