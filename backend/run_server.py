#!/usr/bin/env python3
"""Standalone entry point for the Media Optimizer API.

Accepts --port and --host and sets environment variables BEFORE importing
any package modules (so pydantic-settings picks them up).
"""

import argparse
import os


def main():
    parser = argparse.ArgumentParser(description="Media Optimizer API Server")
    parser.add_argument("--port", type=int, default=9876, help="Port to listen on")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--log-level", type=str, default="INFO", help="Root log level")
    args = parser.parse_args()

    # Set env vars BEFORE any package imports so pydantic Settings reads them
    os.environ["API_PORT"] = str(args.port)
    os.environ["API_HOST"] = args.host
    os.environ["LOG_LEVEL"] = args.log_level.upper()

    import uvicorn

    uvicorn.run(
        "media_optimizer.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
    )


if __name__ == "__main__":
    main()
