from __future__ import annotations

import argparse
from typing import List, Optional

import uvicorn

from src.protocol.http.app import create_app
from src.protocol.http.config import ServerConfig


def build_config(argv: Optional[List[str]] = None) -> ServerConfig:
    """Environment settings overridden by any flags given on the command line."""
    config = ServerConfig.from_env()
    parser = argparse.ArgumentParser(description="Serve the chessboard rules API")
    parser.add_argument("--host", type=str, default=None, help=f"Bind address (default: {config.host})")
    parser.add_argument("--port", type=int, default=None, help=f"Port (default: {config.port})")
    parser.add_argument(
        "--log-level", type=str, default=None, help=f"Logging level (default: {config.log_level})"
    )
    parser.add_argument(
        "--cors-origin",
        action="append",
        default=None,
        help="Allowed browser origin; repeat for several (default: env or http://localhost:3000)",
    )
    args = parser.parse_args(argv)

    overrides = {
        "host": args.host,
        "port": args.port,
        "log_level": args.log_level,
        "cors_origins": args.cors_origin,
    }
    values = config.model_dump()
    values.update({k: v for k, v in overrides.items() if v is not None})
    return ServerConfig(**values)


def main(argv: Optional[List[str]] = None) -> None:
    config = build_config(argv)
    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
