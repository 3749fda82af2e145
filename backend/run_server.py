#!/usr/bin/env python3
"""
Serve the track telemetry API with uvicorn.

    python run_server.py [data_folder] [--port PORT] [--host HOST] [--reload]
"""

import argparse
import os


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Track telemetry timeline server")
    parser.add_argument("data_folder", nargs="?", help="folder with GPX files (default: $TRACKSCOPE_DATA_FOLDER)")
    parser.add_argument("--host", "-H", default="127.0.0.1")
    parser.add_argument("--port", "-p", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="restart on source changes")
    parser.add_argument("--log-level", default="info", choices=["debug", "info", "warning", "error"])
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    # read by the application lifespan
    if args.data_folder:
        os.environ["TRACKSCOPE_DATA_FOLDER"] = args.data_folder
    os.environ["TRACKSCOPE_LOG_LEVEL"] = args.log_level

    import uvicorn

    uvicorn.run(
        "trackscope.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
