#!/usr/bin/env python3
"""
Simple run script for the NodeFlow API.

Usage:
    python run.py

Or with custom settings:
    HOST=127.0.0.1 PORT=8080 python run.py
"""

import uvicorn
import os

from nodeflow.config import settings


def main():
    """Run the FastAPI application."""
    host = settings.HOST
    port = settings.PORT
    reload = os.getenv("RELOAD", "true").lower() == "true"

    server = f"http://{host}:{port}"

    print(f"""
╔═══════════════════════════════════════════════════════════════╗
║                         NodeFlow                              ║
║                                                               ║
║  A minimal async workflow engine                              ║
╠═══════════════════════════════════════════════════════════════╣
║  Server:    {server:<50}║
║  API Docs:  {server + '/docs':<50}║
║  ReDoc:     {server + '/redoc':<50}║
╠═══════════════════════════════════════════════════════════════╣
║  Sample workflows: guessing, word_count                       ║
╚═══════════════════════════════════════════════════════════════╝
    """)

    uvicorn.run(
        "nodeflow.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
