import argparse
import logging

from aiohttp import web

from . import VERSION
from .api import create_app
from .constants import APP_NAME, SCHEMA_VERSION
from .db import DayStore

logger = logging.getLogger("Agenda")


def main(argv=None):
    parser = argparse.ArgumentParser(prog="agenda", description=f"{APP_NAME} local journal server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8765)
    parser.add_argument("--db", default=None, help="sqlite file (default: $AGENDA_DATA_DIR/agenda.db)")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store = DayStore(args.db) if args.db else DayStore.instance()

    banner = f" {APP_NAME} "
    logger.info("=" * 30 + banner + "=" * 30)
    logger.info(f"Version: {VERSION}")
    logger.info(f"Schema version: {SCHEMA_VERSION}")
    logger.info(f"Database: {store.db_path} ({store.count()} day(s))")
    logger.info("=" * (60 + len(banner)))

    web.run_app(create_app(store), host=args.host, port=args.port, print=None)


if __name__ == "__main__":
    main()
