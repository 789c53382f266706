"""
Kiosk Service Launcher

Starts the badge-entry kiosks (Flask).

Endpoints:
- /box?id=<hive>: hive kiosk (badge -> box)
- /screen: screen kiosk (badge -> connect / disconnect / release)

Usage:
    python scripts/run_kiosk_service.py

Environment Variables:
    HIVEBOX_API_BASE_URL: hive API base URL (default: http://127.0.0.1:3000)
    KIOSK_PORT: Flask server port (default: 5000)
    KIOSK_BIND_HOST: Flask bind address (default: 0.0.0.0)
    KIOSK_DEBUG: Enable Flask debug mode (default: false)
    KIOSK_ROTATE_CREDENTIALS: rotate the box login secret on connect (default: false)
"""

import os
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from hive_api.startup_profile import StartupProfile, validate_kiosk_profile
from kiosk import config
from kiosk.service import app
from shared.logging_config import setup_logging


def main():
    """Main entrypoint for the kiosk service."""
    setup_logging("kiosk", level=os.getenv("KIOSK_LOG_LEVEL", "INFO"), log_file=os.getenv("KIOSK_LOG_FILE"))

    debug = os.getenv("KIOSK_DEBUG", "false").lower() in {"true", "1", "yes"}

    try:
        validate_kiosk_profile(
            StartupProfile(role="KIOSK", host=config.KIOSK_BIND_HOST, port=config.KIOSK_PORT),
            config.API_BASE_URL,
        )
    except ValueError as e:
        print(f"Invalid kiosk configuration: {e}")
        return 1

    print("=" * 60)
    print("HiveBox Kiosks")
    print("=" * 60)
    print(f"Hive API: {config.API_BASE_URL}")
    print(f"Bind Address: {config.KIOSK_BIND_HOST}:{config.KIOSK_PORT}")
    print(f"Credential rotation: {'on' if config.ROTATE_CREDENTIALS else 'off'}")
    print("\nEndpoints:")
    print(f"  • Hive kiosk: http://{config.KIOSK_BIND_HOST}:{config.KIOSK_PORT}/box?id=1")
    print(f"  • Screen kiosk: http://{config.KIOSK_BIND_HOST}:{config.KIOSK_PORT}/screen")
    print("\nPress Ctrl+C to stop\n")

    try:
        app.run(host=config.KIOSK_BIND_HOST, port=config.KIOSK_PORT, debug=debug, use_reloader=False)
    except KeyboardInterrupt:
        print("\n\nShutting down kiosk service...")
        return 0
    return 0


if __name__ == "__main__":
    sys.exit(main())
