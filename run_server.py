#!/usr/bin/env python3
"""Run the Informejo helpdesk server.

Usage:
  python run_server.py --host 0.0.0.0 --port 3003
"""

import argparse
import logging

import uvicorn

from informejo.core.config import get_settings
from informejo.server.app import create_app


def main():
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Run the Informejo helpdesk server")
    parser.add_argument("--host", default=settings.server.host, help="Interface to bind")
    parser.add_argument("--port", type=int, default=settings.server.port, help="Port to listen on")
    parser.add_argument("--db", default=None, help="SQLite database path (overrides DATABASE_PATH)")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = create_app(settings, database_path=args.db)
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())


if __name__ == "__main__":
    main()
