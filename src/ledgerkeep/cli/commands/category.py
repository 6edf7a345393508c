"""Category management commands."""

import click
from ledgerkeep.cli.error_handling import handle_domain_error
from ledgerkeep.domain.category import CategoryService
from ledgerkeep.domain.errors import DomainError


def print_category_tree(categories: list[dict], indent: int = 0) -> None:
    """Recursively print category tree."""
    for cat in categories:
        prefix = "  " * indent
        inactive = " (inactive)" if not cat.get("is_active", True) else ""
        click.echo(f"{prefix}{cat['name']} (ID: {cat['id']}){inactive}")
        if cat.get("children"):
            print_category_tree(cat["children"], indent + 1)


def _service(ctx) -> CategoryService:
    return CategoryService(ctx.obj["db"], ctx.obj["tree_cache"])


@click.group()
def category_group():
    """Manage categories."""
    pass


@category_group.command("list")
@click.option("--search", help="Only categories whose name contains this text")
@click.option("--parent", "parent_id", type=int, help="Only children of this category ID")
@click.option("--descendants", is_flag=True, help="With --parent, include the whole subtree")
@click.option("--limit", default=50, show_default=True, help="Maximum rows (1-100)")
@click.pass_context
def list_categories(ctx, search: str | None, parent_id: int | None, descendants: bool, limit: int):
    """List categories.

    Without filters the whole hierarchy is shown as a tree.
    """
    service = _service(ctx)
    org = ctx.obj["org"]

    if search is None and parent_id is None:
        tree = service.get_category_tree(org)
        if not tree:
            click.echo("No categories found. Use 'category create' to add one.")
            return
        click.echo("\nCategories:")
        print_category_tree(tree)
        return

    try:
        categories = service.list_categories(
            org,
            search=search,
            parent_id=parent_id,
            include_descendants=descendants,
            limit=limit,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not categories:
        click.echo("No categories found.")
        return
    for cat in categories:
        click.echo(f"ID: {cat.id:3d} | {service.format_category_path(cat.id)}")


@category_group.command("show")
@click.argument("category_id", type=int)
@click.pass_context
def show_category(ctx, category_id: int):
    """Show a category with its usage counts."""
    try:
        details = _service(ctx).get_category_details(ctx.obj["org"], category_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    category = details["category"]
    click.echo(f"ID: {category.id}")
    click.echo(f"  Path: {details['full_path']}")
    click.echo(f"  Depth: {category.depth}")
    click.echo(f"  Active: {'yes' if category.is_active else 'no'}")
    click.echo(f"  Children: {details['child_count']}")
    click.echo(f"  Transactions: {details['transaction_count']}")


@category_group.command("create")
@click.argument("name")
@click.option("--parent", "parent_id", type=int, help="Parent category ID")
@click.pass_context
def create_category(ctx, name: str, parent_id: int | None):
    """Create a new category."""
    try:
        category_id = _service(ctx).create_category(ctx.obj["org"], name, parent_id=parent_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    parent_str = f" under category {parent_id}" if parent_id is not None else ""
    click.echo(f"Created category '{name.strip()}'{parent_str} (ID: {category_id})")


@category_group.command("move")
@click.argument("category_id", type=int)
@click.option("--parent", "parent_id", type=int, help="New parent category ID")
@click.option("--root", "to_root", is_flag=True, help="Make it a root category")
@click.pass_context
def move_category(ctx, category_id: int, parent_id: int | None, to_root: bool):
    """Move a category, with its subtree, to a new parent."""
    if (parent_id is None) == (not to_root):
        click.echo("Error: Specify exactly one of --parent or --root.", err=True)
        ctx.exit(1)

    service = _service(ctx)
    try:
        category = service.move_category(ctx.obj["org"], category_id, parent_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Moved category {category_id} to '{service.format_category_path(category.id)}'")


@category_group.command("rename")
@click.argument("category_id", type=int)
@click.argument("new_name")
@click.pass_context
def rename_category(ctx, category_id: int, new_name: str):
    """Rename a category."""
    try:
        category = _service(ctx).update_category(ctx.obj["org"], category_id, name=new_name)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Renamed category {category_id} to '{category.name}'")


@category_group.command("delete")
@click.argument("category_id", type=int)
@click.option("--move-children-to", type=int, help="Category ID that adopts the children")
@click.option("--move-children-to-root", is_flag=True, help="Turn the children into root categories")
@click.pass_context
def delete_category(
    ctx, category_id: int, move_children_to: int | None, move_children_to_root: bool
):
    """Delete a category that no transaction uses."""
    try:
        _service(ctx).delete_category(
            ctx.obj["org"],
            category_id,
            move_children_to=move_children_to,
            move_children_to_root=move_children_to_root,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted category {category_id}")


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
