#!/usr/bin/env python
"""
API Server Entry Point

Starts the reports API with Uvicorn.
Usage:
    Development:  python run_server.py --dev
    Production:   python run_server.py --workers 4
"""

import argparse

from sales_analytics.config import get_settings


def run_dev_server(host: str, port: int) -> None:
    """Run development server with auto-reload."""
    import uvicorn

    uvicorn.run(
        "sales_analytics.main:app",
        host=host,
        port=port,
        reload=True,
        reload_dirs=["sales_analytics"],
        log_level="debug",
        access_log=True,
    )


def run_prod_server(host: str, port: int, workers: int) -> None:
    """Run production server with Uvicorn worker processes."""
    import uvicorn

    uvicorn.run(
        "sales_analytics.main:app",
        host=host,
        port=port,
        workers=workers,
        log_level="info",
        access_log=True,
        proxy_headers=True,
        server_header=False,
    )


if __name__ == "__main__":
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Sales Analytics Reports API Server")
    parser.add_argument("--dev", action="store_true", help="Run in development mode with auto-reload")
    parser.add_argument("--host", default=settings.api_host, help=f"Host to bind (default: {settings.api_host})")
    parser.add_argument("--port", type=int, default=settings.api_port, help=f"Port to run on (default: {settings.api_port})")
    parser.add_argument("--workers", type=int, default=1, help="Worker processes in production mode")

    args = parser.parse_args()

    if args.dev:
        run_dev_server(args.host, args.port)
    else:
        run_prod_server(args.host, args.port, args.workers)
