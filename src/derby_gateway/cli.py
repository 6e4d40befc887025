import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from common.config.settings import DerbySettings, get_settings
from common.observability.logging import configure_logging
from dal.bootstrap import DatabaseConfig, build_resolver, setup_database
from dal.errors import DalError
from dal.migrations import run_migrations

logger = logging.getLogger(__name__)


async def run_migrate(settings: DerbySettings) -> List[str]:
    """Connect, apply pending migrations, and disconnect."""
    config = replace(DatabaseConfig.from_settings(settings), run_migrations=False)
    resolver = build_resolver(config)
    adapter = await setup_database(config, resolver)
    try:
        return await run_migrations(adapter, resolver)
    finally:
        await adapter.close()


def main(argv: Optional[List[str]] = None) -> int:
    """Run the Derby CLI."""
    parser = argparse.ArgumentParser(description="Derby SQL gateway")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Serve Command
    serve_parser = subparsers.add_parser("serve", help="Start the HTTP/WebSocket gateway")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: HOST)")
    serve_parser.add_argument("--port", type=int, default=None, help="Port (default: PORT)")
    serve_parser.add_argument(
        "--reload", action="store_true", help="Reload on code changes (development only)"
    )

    # Migrate Command
    subparsers.add_parser("migrate", help="Apply pending SQL migrations and exit")

    args = parser.parse_args(argv)
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    if args.command == "serve":
        import uvicorn

        uvicorn.run(
            "derby_gateway.app:create_app",
            factory=True,
            host=args.host or settings.HOST,
            port=args.port or settings.PORT,
            reload=args.reload,
        )
        return 0
    if args.command == "migrate":
        try:
            applied = asyncio.run(run_migrate(settings))
        except DalError as exc:
            logger.error("Migration failed: %s", exc.message)
            return 1
        logger.info("Applied %d migration(s)", len(applied))
        return 0

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
