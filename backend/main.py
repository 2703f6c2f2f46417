"""Development server entry point: ``python main.py [--reload]``"""
import argparse

import uvicorn

from wms.core.config import settings


def parse_args():
    parser = argparse.ArgumentParser(description=settings.PROJECT_NAME)
    parser.add_argument("--host", default=settings.SERVER_HOST)
    parser.add_argument("--port", type=int, default=settings.SERVER_PORT)
    parser.add_argument("--reload", action="store_true", help="Restart on code changes")
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    uvicorn.run(
        "wms.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.LOG_LEVEL.lower()
    )
