"""CLI error handling helpers."""

import click

from ledgerkeep.domain.errors import DomainError, VersionConflictError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, VersionConflictError):
        click.echo(
            f"Current version is {error.current_version}; "
            "re-run with --expected-version or use --force.",
            err=True,
        )
    ctx.exit(1)
