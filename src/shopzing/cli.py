"""Command-line interface for shopzing."""

import argparse
import logging
import os
import sys
from pathlib import Path

from . import __version__
from .config import Settings
from .errors import PersistenceError, ShopzingError
from .models import ORDER_STATUSES, Order, Product
from .services import CatalogService, OrderService, build_services


def get_settings(args: argparse.Namespace) -> Settings:
    """Settings from the environment, with command-line overrides applied."""
    settings = Settings.from_env()
    if getattr(args, "data_dir", None):
        settings.data_dir = Path(args.data_dir)
    return settings


def get_services(args: argparse.Namespace) -> tuple[CatalogService, OrderService]:
    return build_services(get_settings(args))


def format_product(product: Product) -> str:
    """One-line product summary."""
    stock = f"{product.stock} in stock" if product.stock > 0 else "out of stock"
    star = " *" if product.featured else ""
    return (
        f"{product.id[:8]:<8}  {product.title}{star}  "
        f"${product.price:.2f}  {product.category}/{product.brand}  "
        f"rating {product.rating:.1f}  {stock}"
    )


def format_order(order: Order) -> str:
    """One-line order summary."""
    count = sum(item.quantity for item in order.items)
    return (
        f"{order.id}  {order.status:<10}  user {order.user_id}  "
        f"{count} item(s)  ${order.total}  {order.created_at:%Y-%m-%d %H:%M}"
    )


def cmd_products_list(args: argparse.Namespace) -> int:
    """List products matching search text and filters."""
    try:
        catalog, _ = get_services(args)
        products = catalog.list_products(
            search=args.search,
            category=args.category,
            min_price=args.min_price,
            max_price=args.max_price,
            min_rating=args.min_rating,
            in_stock=args.in_stock,
        )
        if not products:
            print("No products found.")
            return 0

        for product in products:
            print(format_product(product))
        print(f"\n{len(products)} product(s)")
        return 0

    except ShopzingError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_products_show(args: argparse.Namespace) -> int:
    """Show one product in full."""
    try:
        catalog, _ = get_services(args)
        product = catalog.get_product(args.product_id)

        print(f"Product: {product.id}")
        print(f"  Title: {product.title}")
        print(f"  Description: {product.description}")
        print(f"  Price: ${product.price:.2f}")
        print(f"  Category: {product.category}")
        print(f"  Brand: {product.brand}")
        print(f"  Rating: {product.rating:.1f}")
        print(f"  Stock: {product.stock}")
        if product.tags:
            print(f"  Tags: {', '.join(product.tags)}")
        print(f"  Featured: {'yes' if product.featured else 'no'}")
        return 0

    except ShopzingError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_products_recommend(args: argparse.Namespace) -> int:
    """Show products similar to the given one."""
    try:
        catalog, _ = get_services(args)
        source = catalog.get_product(args.product_id)
        recommended = catalog.recommendations(args.product_id)

        print(f"Similar to {source.title}:")
        if not recommended:
            print("  (no other products)")
        for product in recommended:
            print(f"  {format_product(product)}")
        return 0

    except ShopzingError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_list(args: argparse.Namespace) -> int:
    """List orders, newest first."""
    try:
        _, orders = get_services(args)
        if args.user:
            result = orders.user_orders(args.user)
        else:
            # Local operator: the CLI acts with the admin role.
            result = orders.all_orders(is_admin=True)

        if not result:
            print("No orders found.")
            return 0

        for order in result:
            print(format_order(order))
        print(f"\n{len(result)} order(s)")
        return 0

    except ShopzingError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_show(args: argparse.Namespace) -> int:
    """Show one order with its item snapshots."""
    try:
        _, orders = get_services(args)
        order = orders.get_order(args.order_id)
        address = order.shipping_address

        print(f"Order: {order.id}")
        print(f"  User: {order.user_id}")
        print(f"  Status: {order.status}")
        print(f"  Placed: {order.created_at.isoformat()}")
        print(f"  Updated: {order.updated_at.isoformat()}")
        print("  Items:")
        for item in order.items:
            print(f"    {item.quantity} x {item.title} @ ${item.price} = ${item.line_total}")
        print(f"  Subtotal: ${order.subtotal}")
        print(f"  Shipping: ${order.shipping}")
        print(f"  Tax: ${order.tax}")
        print(f"  Total: ${order.total}")
        print(
            f"  Ship to: {address.street}, {address.city}, {address.state} "
            f"{address.zip_code}, {address.country}"
        )
        print(f"  Payment: {order.payment_method}")
        return 0

    except ShopzingError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_status(args: argparse.Namespace) -> int:
    """Move an order to a new status."""
    try:
        _, orders = get_services(args)
        order = orders.update_status(args.order_id, args.status, is_admin=True)
        print(f"Order {order.id} is now {order.status}")
        return 0

    except PersistenceError as e:
        print(f"Warning: status changed but not saved: {e}", file=sys.stderr)
        return 1
    except ShopzingError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server."""
    try:
        import uvicorn

        settings = get_settings(args)

        print("Starting shopzing API server...")
        print(f"Data directory: {settings.data_dir}")
        print(f"API docs: http://{args.host}:{args.port}/docs")
        print()

        if args.reload:
            # Reload needs an import string; the factory re-reads the environment.
            os.environ["SHOPZING_DATA_DIR"] = str(settings.data_dir)
            app_target = "shopzing.api:create_app"
        else:
            from .api import create_app
            app_target = create_app(settings)

        uvicorn.run(
            app_target,
            host=args.host,
            port=args.port,
            reload=args.reload,
            factory=args.reload,
            workers=1,  # Stores live in process memory
        )
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="shopzing",
        description="Storefront catalog and order ledger",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--data-dir", help="Directory holding the catalog and order files (overrides SHOPZING_DATA_DIR)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind (default: 8000)")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")

    # products
    products_parser = subparsers.add_parser("products", help="Browse the catalog")
    products_subparsers = products_parser.add_subparsers(dest="products_command")

    list_parser = products_subparsers.add_parser("list", help="List or search products")
    list_parser.add_argument("--search", "-s", help="Text to match in title, description, category, brand or tags")
    list_parser.add_argument("--category", "-c", help="Exact category")
    list_parser.add_argument("--min-price", type=float, help="Minimum price (inclusive)")
    list_parser.add_argument("--max-price", type=float, help="Maximum price (inclusive)")
    list_parser.add_argument("--min-rating", type=float, help="Minimum rating")
    list_parser.add_argument("--in-stock", action="store_true", help="Only products with stock")

    show_parser = products_subparsers.add_parser("show", help="Show a product")
    show_parser.add_argument("product_id", help="Product ID")

    recommend_parser = products_subparsers.add_parser("recommend", help="Show similar products")
    recommend_parser.add_argument("product_id", help="Product ID")

    # orders
    orders_parser = subparsers.add_parser("orders", help="Inspect and fulfil orders")
    orders_subparsers = orders_parser.add_subparsers(dest="orders_command")

    orders_list_parser = orders_subparsers.add_parser("list", help="List orders (newest first)")
    orders_list_parser.add_argument("--user", "-u", help="Only this user's orders")

    orders_show_parser = orders_subparsers.add_parser("show", help="Show an order")
    orders_show_parser.add_argument("order_id", help="Order ID")

    orders_status_parser = orders_subparsers.add_parser("status", help="Change an order's status")
    orders_status_parser.add_argument("order_id", help="Order ID")
    orders_status_parser.add_argument(
        "status", choices=ORDER_STATUSES
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=get_settings(args).log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 0

    if args.command == "products":
        if not getattr(args, "products_command", None):
            parser.parse_args(["products", "--help"])
            return 0
        commands = {
            "list": cmd_products_list,
            "show": cmd_products_show,
            "recommend": cmd_products_recommend,
        }
        return commands[args.products_command](args)

    if args.command == "orders":
        if not getattr(args, "orders_command", None):
            parser.parse_args(["orders", "--help"])
            return 0
        commands = {
            "list": cmd_orders_list,
            "show": cmd_orders_show,
            "status": cmd_orders_status,
        }
        return commands[args.orders_command](args)

    if args.command == "serve":
        return cmd_serve(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
