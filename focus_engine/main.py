"""
Entry point — start the focus engine.

Usage:
    python -m focus_engine.main
    python -m focus_engine.main --port 9000 --data-dir ~/.focus
    uvicorn focus_engine.api.app:app --host 127.0.0.1 --port 8766
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

import uvicorn

from .config import config


def main():
    parser = argparse.ArgumentParser(description="Start the focus engine")
    parser.add_argument("--host", default=config.api_host)
    parser.add_argument("--port", type=int, default=config.api_port)
    parser.add_argument("--data-dir", type=Path, default=None, help="Where focus.db and settings.json live")
    parser.add_argument("--log-level", default=config.log_level)
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )

    if args.data_dir is not None:
        config.data_dir = args.data_dir.expanduser()
        config.data_dir.mkdir(parents=True, exist_ok=True)

    from .api.app import create_app

    uvicorn.run(
        create_app(config),
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
    )


if __name__ == "__main__":
    main()
