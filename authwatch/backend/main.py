from __future__ import annotations

import argparse
import logging
import sys
from typing import NoReturn

import uvicorn

from .api.main import create_app, set_pipeline
from .config import settings
from .metrics import METRICS
from .pipeline import IngestionPipeline

logger = logging.getLogger("authwatch.main")


def run(host: str, port: int) -> None:
    pipeline = IngestionPipeline.from_settings(settings)
    set_pipeline(pipeline)
    app = create_app()

    logger.info(
        "AuthWatch - API=http://%s:%d store=%s window=%s",
        host,
        port,
        settings.STORE_BACKEND,
        settings.COUNTING_WINDOW_SECONDS or "all-time",
    )
    try:
        uvicorn.run(app, host=host, port=port, log_level="warning")
    finally:
        pipeline.close()
        logger.info(
            "Final stats - engine=%s pipeline=%s",
            pipeline.engine.stats,
            METRICS.as_dict(),
        )
        logger.info("AuthWatch stopped cleanly")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="AuthWatch brute-force login monitor")
    parser.add_argument("--host",    default=settings.API_HOST)
    parser.add_argument("--port",    default=settings.API_PORT, type=int)
    parser.add_argument("--store",   default=settings.STORE_BACKEND, choices=["memory", "sqlite"])
    parser.add_argument("--db-path", default=settings.DB_PATH)
    parser.add_argument(
        "--log-level", default=settings.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser.parse_args()


def main() -> NoReturn:
    args = _parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    if args.port <= 0 or args.port > 65535:
        print(f"ERROR: invalid --port: {args.port}", file=sys.stderr)
        sys.exit(1)

    settings.STORE_BACKEND = args.store
    settings.DB_PATH = args.db_path
    run(host=args.host, port=args.port)
    sys.exit(0)


if __name__ == "__main__":
    main()
