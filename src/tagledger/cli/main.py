"""Main CLI entry point."""

import logging

import click
from tagledger.database.factories import create_sqlite_database

# Import and register all commands at module level
from tagledger.cli.commands import (
    accounts,
    add,
    import_cmd,
    info,
    query,
    reset,
    tags,
    undo,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(dir_okay=False),
    help="Path to database file (overrides TAGLEDGER_DB_PATH environment variable)",
    envvar="TAGLEDGER_DB_PATH",
)
@click.option("-v", "--verbose", is_flag=True, help="Log what tagledger is doing")
@click.pass_context
def cli(ctx, db_path: str | None, verbose: bool):
    """tagledger - personal ledger with rule-based tagging.

    Import bank transactions, tag them with rules, query the result and
    undo any command that changed the ledger.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None and "db" not in ctx.obj:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
accounts.register_commands(cli)
add.register_commands(cli)
import_cmd.register_commands(cli)
info.register_commands(cli)
query.register_commands(cli)
reset.register_commands(cli)
tags.register_commands(cli)
undo.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
