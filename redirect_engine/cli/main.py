"""Main CLI entry point for the Redirect Engine."""

import argparse
import logging
import sys

from redirect_engine.core import (
    ConfigurationError,
    NotFoundError,
    StorageError,
    TransientStorageError,
    load_settings,
    save_settings,
)
from redirect_engine.core.admin import OperationResult
from redirect_engine.core.builder import Engine, build_engine

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Configure logging for the CLI."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )
    # Suppress httpx INFO logs for cleaner output
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _engine() -> Engine:
    try:
        return build_engine(load_settings())
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _finish(result: OperationResult, message: str) -> None:
    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        sys.exit(1)
    print(message)


def _print_product(product) -> None:
    print(f"  Name:        {product.name}")
    print(f"  Display:     {product.display_name}")
    print(f"  Folder:      {product.folder_id}")
    print(f"  Enabled:     {'yes' if product.enabled else 'no'}")
    print(f"  Category:    {product.category}")
    if product.tags:
        print(f"  Tags:        {', '.join(sorted(product.tags))}")
    if product.description:
        print(f"  Description: {product.description}")
    print()


def cmd_configure(args):
    """Handle the configure command."""
    try:
        settings = load_settings(apply_env=False)
    except ConfigurationError as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        sys.exit(1)

    updates = {
        "store_id": args.store_id,
        "fallback_root_folder_id": args.fallback_folder_id,
        "store_url": args.store_url,
        "store_token": args.store_token,
        "cache_ttl_seconds": args.cache_ttl,
        "redirect_url_template": args.url_template,
    }
    for attr, value in updates.items():
        if value is not None:
            setattr(settings, attr, value)
    if args.analytics is not None:
        settings.analytics_enabled = args.analytics == "on"

    try:
        path = save_settings(settings)
    except ConfigurationError as e:
        print(f"Error saving settings: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"Settings saved to: {path}")


def cmd_show_config(args):
    """Handle the show-config command."""
    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"  Store ID:        {settings.effective_store_id or '(not set)'}")
    print(f"  Fallback folder: {settings.effective_fallback_root_folder_id or '(not set)'}")
    print(f"  Store URL:       {settings.store_url or '(not set)'}")
    print(f"  Store token:     {'(set)' if settings.store_token else '(not set)'}")
    print(f"  Cache TTL:       {settings.cache_ttl_seconds:g}s")
    print(f"  URL template:    {settings.redirect_url_template}")
    print(f"  Analytics:       {'on' if settings.analytics_enabled else 'off'}")


def cmd_list(args):
    """Handle the list command."""
    with _engine() as engine:
        result = engine.admin.list_products(
            include_disabled=not args.enabled_only,
            category=args.category,
        )
    if not result.success:
        print(f"Error listing products: {result.error}", file=sys.stderr)
        sys.exit(1)

    products = result.value
    if not products:
        print("No products registered.")
        return

    print(f"Registered products ({len(products)}):")
    print()
    for product in products:
        _print_product(product)


def cmd_add(args):
    """Handle the add command."""
    data = {
        "name": args.name,
        "folderId": args.folder_id,
        "displayName": args.display_name,
        "description": args.description,
        "category": args.category,
        "tags": args.tags,
        "enabled": "false" if args.disabled else "true",
    }
    with _engine() as engine:
        result = engine.admin.add_product(data)
    _finish(result, f"Added product '{args.name}'")


def cmd_update(args):
    """Handle the update command."""
    patch = {}
    for key, value in (
        ("folderId", args.folder_id),
        ("displayName", args.display_name),
        ("description", args.description),
        ("category", args.category),
        ("tags", args.tags),
    ):
        if value is not None:
            patch[key] = value

    if not patch:
        print("Error: Nothing to update.", file=sys.stderr)
        sys.exit(1)

    with _engine() as engine:
        result = engine.admin.update_product(args.name, patch)
    _finish(result, f"Updated product '{args.name}'")


def cmd_delete(args):
    """Handle the delete command."""
    if not args.yes:
        answer = input(f"Permanently delete '{args.name}'? [y/N]: ").strip().lower()
        if answer not in ("y", "yes"):
            print("Cancelled.")
            return

    with _engine() as engine:
        result = engine.admin.delete_product(args.name)
    _finish(result, f"Deleted product '{args.name}'")


def cmd_enable(args):
    """Handle the enable and disable commands."""
    with _engine() as engine:
        result = engine.admin.set_enabled(args.name, args.enabled)
    state = "enabled" if args.enabled else "disabled"
    _finish(result, f"Product '{args.name}' {state}")


def cmd_resolve(args):
    """Handle the resolve command - print the redirect target."""
    with _engine() as engine:
        try:
            target = engine.redirects.redirect(args.product, args.version)
        except NotFoundError as e:
            print(f"Not found: {e}", file=sys.stderr)
            sys.exit(1)
        except TransientStorageError as e:
            print(f"Store unavailable after {e.attempts} attempts, try again.", file=sys.stderr)
            sys.exit(1)
        except StorageError as e:
            logger.error(f"Store error while resolving '{args.product}': {e}")
            print("Error: The store could not serve this request.", file=sys.stderr)
            sys.exit(1)
        except ConfigurationError as e:
            print(f"Configuration error: {e}", file=sys.stderr)
            sys.exit(1)

    print(target.url)
    if args.verbose:
        print(f"  File:    {target.artifact.file_name} ({target.artifact.file_id})", file=sys.stderr)
        print(f"  Created: {target.artifact.created_at}", file=sys.stderr)


def cmd_clear_cache(args):
    """Handle the clear-cache command."""
    with _engine() as engine:
        result = engine.admin.clear_cache()
    _finish(result, "Configuration cache cleared.")


def cmd_export_analytics(args):
    """Handle the export-analytics command."""
    with _engine() as engine:
        result = engine.admin.export_analytics()
    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        sys.exit(1)

    if args.output:
        with open(args.output, "w", newline="") as f:
            f.write(result.value)
        print(f"Analytics written to: {args.output}")
    else:
        sys.stdout.write(result.value)


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="redirect-engine",
        description="Versioned template redirect engine CLI",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Configure command
    configure_parser = subparsers.add_parser("configure", help="Update persisted settings")
    configure_parser.add_argument("--store-id", help="Primary registry store identifier")
    configure_parser.add_argument("--fallback-folder-id", help="Root folder scanned when no store is set")
    configure_parser.add_argument("--store-url", help="Base URL of the store service")
    configure_parser.add_argument("--store-token", help="Bearer token for the store service")
    configure_parser.add_argument("--cache-ttl", type=float, help="Cache lifetime in seconds")
    configure_parser.add_argument("--url-template", help="Redirect URL template, e.g. '.../{file_id}/copy'")
    configure_parser.add_argument("--analytics", choices=["on", "off"], help="Record access counters")
    configure_parser.set_defaults(func=cmd_configure)

    # Show-config command
    show_parser = subparsers.add_parser("show-config", help="Show effective settings")
    show_parser.set_defaults(func=cmd_show_config)

    # List command
    list_parser = subparsers.add_parser("list", help="List registered products")
    list_parser.add_argument("--enabled-only", action="store_true", help="Hide disabled products")
    list_parser.add_argument("--category", help="Only list products in this category")
    list_parser.set_defaults(func=cmd_list)

    # Add command
    add_parser = subparsers.add_parser("add", help="Add a product")
    add_parser.add_argument("--name", required=True, help="Product name (letters, digits, '_' and '-')")
    add_parser.add_argument("--folder-id", required=True, help="Folder holding the product's versions")
    add_parser.add_argument("--display-name", help="Human-readable name")
    add_parser.add_argument("--description", help="Description")
    add_parser.add_argument("--category", help="Category")
    add_parser.add_argument("--tags", help="Comma-separated tags")
    add_parser.add_argument("--disabled", action="store_true", help="Add the product disabled")
    add_parser.set_defaults(func=cmd_add)

    # Update command
    update_parser = subparsers.add_parser("update", help="Update a product")
    update_parser.add_argument("--name", required=True, help="Product name")
    update_parser.add_argument("--folder-id", help="New folder ID")
    update_parser.add_argument("--display-name", help="New display name")
    update_parser.add_argument("--description", help="New description")
    update_parser.add_argument("--category", help="New category")
    update_parser.add_argument("--tags", help="New comma-separated tags")
    update_parser.set_defaults(func=cmd_update)

    # Delete command
    delete_parser = subparsers.add_parser("delete", help="Delete a product permanently")
    delete_parser.add_argument("--name", required=True, help="Product name")
    delete_parser.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
    delete_parser.set_defaults(func=cmd_delete)

    # Enable / disable commands
    enable_parser = subparsers.add_parser("enable", help="Enable a product")
    enable_parser.add_argument("--name", required=True, help="Product name")
    enable_parser.set_defaults(func=cmd_enable, enabled=True)

    disable_parser = subparsers.add_parser("disable", help="Disable a product")
    disable_parser.add_argument("--name", required=True, help="Product name")
    disable_parser.set_defaults(func=cmd_enable, enabled=False)

    # Resolve command
    resolve_parser = subparsers.add_parser("resolve", help="Print the redirect target for a product")
    resolve_parser.add_argument("--product", required=True, help="Product name")
    resolve_parser.add_argument("--version", help="Exact file name of the version (default: latest)")
    resolve_parser.set_defaults(func=cmd_resolve)

    # Clear-cache command
    clear_parser = subparsers.add_parser("clear-cache", help="Invalidate the configuration cache")
    clear_parser.set_defaults(func=cmd_clear_cache)

    # Export-analytics command
    export_parser = subparsers.add_parser("export-analytics", help="Export access counters as CSV")
    export_parser.add_argument("--output", help="Write CSV to this file instead of stdout")
    export_parser.set_defaults(func=cmd_export_analytics)

    args = parser.parse_args()

    setup_logging(args.verbose)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
