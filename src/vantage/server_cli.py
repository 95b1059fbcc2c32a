"""CLI entry point for the Vantage API server."""

import argparse
import os


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="vantage-server",
        description="Vantage API server: project portfolio mutations and consistency",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    parser.add_argument(
        "--local",
        action="store_true",
        help="Local dev mode: SQLite database, jobs run in-process without Redis",
    )
    parser.add_argument("--log-level", default=None, help="Override VANTAGE_LOG_LEVEL")
    args = parser.parse_args(argv)

    # Settings are read at import time, so the environment must be set first
    if args.local:
        os.environ["VANTAGE_LOCAL_MODE"] = "1"
        os.environ["VANTAGE_LOCAL"] = "1"
    if args.log_level:
        os.environ["VANTAGE_LOG_LEVEL"] = args.log_level

    import uvicorn

    uvicorn.run("vantage.main:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
