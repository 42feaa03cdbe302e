"""
prefixfs: a folder view over a flat object store
"""

import argparse
import asyncio
import inspect
import io
import json
import logging
import os
import signal
import sys
from pathlib import Path

import uvicorn
from uvicorn.config import LOGGING_CONFIG

from prefixfs.config import ENV_PREFIX, get_settings
from prefixfs.connections import gateway, namespace, prefixfs_connections
from prefixfs.export import export_metrics
from prefixfs.models import MetricsQuery
from prefixfs.pagination import CancelToken, metrics_pager


def run(args):
    settings = get_settings()
    logging.info(f"Starting server at port {args.port}, debug={not args.nodebug}, object store={settings.gateway_url}")
    logging.info(
        "To change server config, create an .env file and/or set environment parameters,\n"
        f"{' ' * 26}see prefixfs/config.py for more information.\n"
        f"{' ' * 26}You can also run `python -m prefixfs create-env` to create a .env settings file\n"
    )
    log_config = "logging.yml" if Path("logging.yml").exists() else LOGGING_CONFIG
    uvicorn.run("prefixfs.api:app", host="0.0.0.0", reload=not args.nodebug, port=int(args.port), log_config=log_config)


async def ls(args):
    async with prefixfs_connections():
        contents = await namespace().contents(args.prefix)
    if args.json:
        print(contents.model_dump_json(indent=2))
        return
    for folder in contents.folders:
        print(f"[DIR]  {folder.name:<40} {folder.item_count:>5} item(s)  {folder.id}")
    for document in contents.documents:
        print(f"[FILE] {document.name:<40} {document.type:>12}  {document.id}")
    print(f"\nTotal: {len(contents.folders)} folders, {len(contents.documents)} documents")


async def breadcrumbs(args):
    async with prefixfs_connections():
        path = await namespace().breadcrumbs(args.prefix)
    print(" / ".join(["Root"] + [crumb.name for crumb in path]))


async def search(args):
    async with prefixfs_connections():
        results = await namespace().search(args.query, args.type, args.limit)
    for item in results:
        print(f"{item.type:<7}{item.key}")


def _metrics_query(args) -> MetricsQuery:
    return MetricsQuery(q=args.q, sort=args.sort, order=args.order, activity=args.activity)


async def metrics(args):
    settings = get_settings()
    async with prefixfs_connections():
        pager = metrics_pager(gateway(), page_size=args.page_size or settings.page_size)
        query = _metrics_query(args)
        window = await pager.first_page(query)
        while pager.current_page < args.page:
            if not pager.has_next:
                logging.error(f"There are only {pager.current_page} page(s)")
                sys.exit(1)
            window = await pager.next_page(query)
    for item in window.items:
        print(json.dumps(item.model_dump(mode="json")))


async def export(args):
    settings = get_settings()
    cancel = CancelToken()

    def progress(fraction: float | None, n: int):
        done = f"{fraction:.0%}" if fraction is not None else "?"
        print(f"\rCollected {n} rows ({done})", end="", file=sys.stderr)

    # Ctrl-C stops collecting after the page in flight
    asyncio.get_running_loop().add_signal_handler(signal.SIGINT, cancel.cancel)
    out = io.StringIO()
    async with prefixfs_connections():
        pager = metrics_pager(gateway(), export_page_size=settings.export_page_size)
        n = await export_metrics(pager, out, _metrics_query(args), on_progress=progress, cancel=cancel)
    print(file=sys.stderr)
    if cancel.cancelled:
        logging.warning(f"Export cancelled, {args.output} not written")
        sys.exit(1)
    with open(args.output, "w", newline="") as f:
        f.write(out.getvalue())
    logging.info(f"Written {n} rows to {args.output}")


def create_env(args):
    if os.path.exists(".env"):
        print("*** File .env already exists, quitting ***")
        sys.exit(1)
    env = {f"{ENV_PREFIX}gateway_url": args.gateway_url}
    if args.token:
        env[f"{ENV_PREFIX}gateway_token"] = args.token
    with open(".env", "w") as f:
        for key, val in env.items():
            f.write(f"{key}={val}\n")
    os.chmod(".env", 0o600)
    print("*** Created .env file ***")


def config(_args):
    settings = get_settings()
    for fieldname, fieldinfo in type(settings).model_fields.items():
        if doc := fieldinfo.description:
            print(f"# {doc}")
        value = getattr(settings, fieldname)
        if fieldname == "gateway_token" and value:
            value = "********"
        print(f"{ENV_PREFIX.upper()}{fieldname.upper()}={'' if value is None else value}\n")


def _add_query_args(p):
    p.add_argument("-q", help="Filter text")
    p.add_argument("--sort", help="Field to sort on")
    p.add_argument("--order", choices=["asc", "desc"])
    p.add_argument("--activity", choices=["all", "active", "inactive", "new"])


def main():
    parser = argparse.ArgumentParser(description=__doc__, prog="python -m prefixfs")

    subparsers = parser.add_subparsers(dest="action", title="action", help="Action to perform:", required=True)
    p = subparsers.add_parser("run", help="Run the API in development mode")
    p.add_argument(
        "--no-debug",
        action="store_true",
        dest="nodebug",
        help="Disable debug mode (useful for testing downstream clients)",
    )
    p.add_argument("-p", "--port", help="Port", default=5000)
    p.set_defaults(func=run)

    p = subparsers.add_parser("ls", help="List the folders and documents in a folder")
    p.add_argument("prefix", nargs="?", default="", help="Folder to list (default: root)")
    p.add_argument("--json", action="store_true", help="Output as json")
    p.set_defaults(func=ls)

    p = subparsers.add_parser("breadcrumbs", help="Show the path from the root to a folder")
    p.add_argument("prefix")
    p.set_defaults(func=breadcrumbs)

    p = subparsers.add_parser("search", help="Search files and folders by name")
    p.add_argument("query")
    p.add_argument("-t", "--type", choices=["all", "files", "folders"], default="all")
    p.add_argument("-n", "--limit", type=int, default=100)
    p.set_defaults(func=search)

    p = subparsers.add_parser("metrics", help="Show one page of user metrics (as json lines)")
    p.add_argument("--page", type=int, default=1, help="Page number, starting from 1")
    p.add_argument("--page-size", type=int, dest="page_size")
    _add_query_args(p)
    p.set_defaults(func=metrics)

    p = subparsers.add_parser("export-metrics", help="Export all user metrics to a CSV file")
    p.add_argument("-o", "--output", default="user_metrics.csv")
    _add_query_args(p)
    p.set_defaults(func=export)

    p = subparsers.add_parser("create-env", help="Create the .env file")
    p.add_argument("-g", "--gateway-url", dest="gateway_url", required=True, help="Base URL of the object store API")
    p.add_argument("-t", "--token", help="Bearer token for the object store API")
    p.set_defaults(func=create_env)

    p = subparsers.add_parser("config", help="Echo the current settings")
    p.set_defaults(func=config)

    args = parser.parse_args()

    logging.basicConfig(format="[%(levelname)-7s:%(name)-15s] %(message)s", level=logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    if inspect.iscoroutinefunction(args.func):
        asyncio.run(args.func(args))
    else:
        args.func(args)


if __name__ == "__main__":
    main()
