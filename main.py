"""
Main entrypoint.

    python main.py serve                 # API + scheduler + discovery (uvicorn)
    python main.py ingest txs.jsonl      # replay sync-pipeline payloads, one JSON object per line
    python main.py summarize             # run one summation pass, then exit
    python main.py purge                 # run one retention purge, then exit

Env: DATABASE_URL, REDIS_URL, TRONGRID_URL, TRONGRID_API_KEY, API_HOST, API_PORT,
LOG_LEVEL, LOG_FORMAT (see backend_tronwatch.config).
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from backend_tronwatch.tronwatch_logging import get_logger

logger = get_logger("main")


def serve() -> int:
    import uvicorn

    from backend_tronwatch.api_server.server import app
    from backend_tronwatch.config import get_settings

    settings = get_settings()
    logger.info("main_server_starting", host=settings.api_host, port=settings.api_port)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level="info")
    return 0


def ingest(path: Path) -> int:
    """Feed payloads through the observer registry in file order."""
    from backend_tronwatch.core.exceptions import PersistenceError
    from backend_tronwatch.runtime import build_container

    container = build_container()
    processed = 0
    try:
        with path.open("r", encoding="utf-8") as fh:
            for line_no, line in enumerate(fh, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    payload = json.loads(line)
                except ValueError as e:
                    logger.warning("ingest_line_invalid", line=line_no, error=str(e))
                    continue
                try:
                    container.registry.dispatch(payload)
                except PersistenceError as e:
                    logger.error("ingest_aborted", line=line_no, error=str(e))
                    return 1
                processed += 1
    finally:
        container.stop()
    logger.info("ingest_done", processed=processed, **container.db.table_counts())
    return 0


def summarize() -> int:
    from backend_tronwatch.runtime import build_container

    container = build_container()
    try:
        written = container.summation_job.run()
    finally:
        container.stop()
    logger.info("summarize_done", written=written)
    return 0


def purge() -> int:
    from backend_tronwatch.runtime import build_container

    container = build_container()
    try:
        result = container.purge_job.run()
    finally:
        container.stop()
    logger.info("purge_command_done", summations_deleted=result.summations_deleted)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Tronwatch delegation pipeline.")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("serve", help="Run the API with background jobs (default).")
    ingest_parser = sub.add_parser("ingest", help="Replay a JSON-lines file of transactions.")
    ingest_parser.add_argument("path", type=Path)
    sub.add_parser("summarize", help="Run one summation pass.")
    sub.add_parser("purge", help="Run one retention purge.")
    args = parser.parse_args(argv)

    if args.command == "ingest":
        return ingest(args.path)
    if args.command == "summarize":
        return summarize()
    if args.command == "purge":
        return purge()
    return serve()


if __name__ == "__main__":
    sys.exit(main())
