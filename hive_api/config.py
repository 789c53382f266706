import os
from pathlib import Path


def _int_env(name: str, default: int) -> int:
    raw = str(os.getenv(name, str(default))).strip()
    try:
        return int(raw)
    except Exception:
        return default


_DEFAULT_DB_PATH = Path(__file__).resolve().parent / "data" / "database.json"

API_PORT = _int_env("HIVEBOX_API_PORT", 3000)
BIND_HOST = str(os.getenv("HIVEBOX_BIND_HOST", "0.0.0.0")).strip()
DB_PATH = Path(str(os.getenv("HIVEBOX_DB_PATH", str(_DEFAULT_DB_PATH))).strip())
IP_PREFIX = str(os.getenv("HIVEBOX_IP_PREFIX", "10.1")).strip().rstrip(".")
STATS_DAYS = _int_env("HIVEBOX_STATS_DAYS", 7)
DEFAULT_HIVE = _int_env("HIVEBOX_DEFAULT_HIVE", 1)
