"""Vendor management commands."""

import click
from ledgerkeep.cli.error_handling import handle_domain_error
from ledgerkeep.domain.errors import DomainError
from ledgerkeep.domain.vendor import VendorService


@click.group()
def vendor_group():
    """Manage vendors."""
    pass


@vendor_group.command("create")
@click.argument("name")
@click.pass_context
def create_vendor(ctx, name: str):
    """Create a new vendor."""
    service = VendorService(ctx.obj["db"])
    try:
        vendor_id = service.create_vendor(ctx.obj["org"], name)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created vendor '{name}' (ID: {vendor_id})")


@vendor_group.command("list")
@click.option("--all", "include_inactive", is_flag=True, help="Include deactivated vendors")
@click.pass_context
def list_vendors(ctx, include_inactive: bool):
    """List vendors."""
    vendors = VendorService(ctx.obj["db"]).list_vendors(
        ctx.obj["org"], include_inactive=include_inactive
    )
    if not vendors:
        click.echo("No vendors found.")
        return
    for vendor in vendors:
        inactive = " (inactive)" if not vendor.is_active else ""
        click.echo(f"ID: {vendor.id:3d} | {vendor.name}{inactive}")


@vendor_group.command("deactivate")
@click.argument("vendor_id", type=int)
@click.pass_context
def deactivate_vendor(ctx, vendor_id: int):
    """Deactivate a vendor."""
    try:
        VendorService(ctx.obj["db"]).deactivate_vendor(ctx.obj["org"], vendor_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deactivated vendor {vendor_id}")


def register_commands(cli):
    """Register vendor commands with main CLI."""
    cli.add_command(vendor_group, name="vendor")
