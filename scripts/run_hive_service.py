"""
Hive API Service Launcher

Starts the box allocation API (FastAPI + uvicorn).

This service provides:
- Hive/Box management and suggested addresses
- Badge login, disconnect, release, admin delete
- Admins, identity names and settings
- Usage statistics, reset, clear history

Usage:
    python scripts/run_hive_service.py --host 0.0.0.0 --port 3000

Environment Variables:
    HIVEBOX_API_PORT: API port (default: 3000)
    HIVEBOX_BIND_HOST: Bind address (default: 0.0.0.0)
    HIVEBOX_DB_PATH: JSON database file (default: hive_api/data/database.json)
    HIVEBOX_LOG_LEVEL: Log level (default: INFO)
"""
import argparse
import os
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import uvicorn

from shared.logging_config import setup_logging


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the HiveBox allocation API")
    parser.add_argument("--host", default=os.getenv("HIVEBOX_BIND_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("HIVEBOX_API_PORT", "3000")))
    parser.add_argument("--db", default=os.getenv("HIVEBOX_DB_PATH"), help="Path to the JSON database")
    parser.add_argument("--log-file", default=os.getenv("HIVEBOX_LOG_FILE"))
    args = parser.parse_args()

    # Config is read at import time, so export before the app module loads
    os.environ["HIVEBOX_API_PORT"] = str(args.port)
    os.environ["HIVEBOX_BIND_HOST"] = args.host
    if args.db:
        os.environ["HIVEBOX_DB_PATH"] = args.db

    setup_logging("hive", level=os.getenv("HIVEBOX_LOG_LEVEL", "INFO"), log_file=args.log_file)

    print("=" * 60)
    print("HiveBox API")
    print("=" * 60)
    print(f"API Address: {args.host}:{args.port}")
    print(f"Database: {args.db or 'hive_api/data/database.json'}")
    print("=" * 60)

    uvicorn.run("hive_api.service:app", host=args.host, port=args.port, reload=False, log_config=None)


if __name__ == "__main__":
    main()
