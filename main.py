#!/usr/bin/env python3
"""
Ministry Reports gateway: launch the API server.

Usage:
    python main.py                                   # http://localhost:8000
    python main.py --port 9000                       # http://localhost:9000
    python main.py --host 127.0.0.1                  # bind to localhost only
    python main.py --api-url https://ministry.example.org
    python main.py --reload                          # auto-reload on code changes
"""

from __future__ import annotations

import argparse
import os
import sys
import webbrowser


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Launch the Ministry Reports gateway.",
    )
    parser.add_argument(
        "--host", default=os.getenv("APP_HOST", "127.0.0.1"),
        help="Bind address (default: 127.0.0.1 or APP_HOST env var)",
    )
    parser.add_argument(
        "--port", type=int, default=int(os.getenv("APP_PORT", "8000")),
        help="Port to listen on (default: 8000 or APP_PORT env var)",
    )
    parser.add_argument(
        "--api-url", default=None,
        help="Ministry API base URL (default: MINISTRY_API_BASE_URL or http://localhost:3000)",
    )
    parser.add_argument(
        "--log-format", choices=("text", "json"), default=None,
        help="Log format (default: APP_LOG_FORMAT or text)",
    )
    parser.add_argument(
        "--reload", action="store_true",
        help="Enable auto-reload on file changes (development mode)",
    )
    parser.add_argument(
        "--open-docs", action="store_true",
        help="Open the OpenAPI docs in a browser once the server starts",
    )
    args = parser.parse_args()

    # The app reads its configuration from the environment at import time.
    if args.api_url:
        os.environ["MINISTRY_API_BASE_URL"] = args.api_url
    if args.log_format:
        os.environ["APP_LOG_FORMAT"] = args.log_format

    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn is not installed.")
        print("  pip install uvicorn[standard]")
        sys.exit(1)

    url = f"http://{'localhost' if args.host == '0.0.0.0' else args.host}:{args.port}"
    print(f"Starting Ministry Reports gateway at {url}")
    print(f"Ministry API: {os.getenv('MINISTRY_API_BASE_URL', 'http://localhost:3000')}")
    print()

    if args.open_docs:
        # Open browser after a short delay to let the server start
        import threading
        threading.Timer(1.5, webbrowser.open, args=(f"{url}/docs",)).start()

    uvicorn.run(
        "api.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
