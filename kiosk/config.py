import os


def _int_env(name: str, default: int) -> int:
    raw = str(os.getenv(name, str(default))).strip()
    try:
        return int(raw)
    except Exception:
        return default


def _bool_env(name: str, default: bool = False) -> bool:
    raw = str(os.getenv(name, "true" if default else "false")).strip().lower()
    return raw in {"true", "1", "yes", "on"}


API_BASE_URL = str(os.getenv("HIVEBOX_API_BASE_URL", "http://127.0.0.1:3000")).strip().rstrip("/")
KIOSK_PORT = _int_env("KIOSK_PORT", 5000)
KIOSK_BIND_HOST = str(os.getenv("KIOSK_BIND_HOST", "0.0.0.0")).strip()
SECRET_KEY = os.getenv("KIOSK_SECRET_KEY", "hivebox-kiosk-secret")
IDLE_SECONDS = _int_env("KIOSK_IDLE_SECONDS", 10)
MAX_TAG_LENGTH = _int_env("KIOSK_MAX_TAG_LENGTH", 14)

# Credential rotation (screen kiosk "connect")
ROTATE_CREDENTIALS = _bool_env("KIOSK_ROTATE_CREDENTIALS", False)
SSH_USER = os.getenv("KIOSK_SSH_USER", "root")
SSH_PASSWORD = os.getenv("KIOSK_SSH_PASSWORD", "root")
SSH_TIMEOUT = _int_env("KIOSK_SSH_TIMEOUT", 10)
LOGIN_USER = os.getenv("KIOSK_LOGIN_USER", "admin")
LOGIN_URL = os.getenv("KIOSK_LOGIN_URL", "https://{address}/api/auth/login")
WRITABLE_COMMAND = os.getenv("KIOSK_WRITABLE_COMMAND", "rw")
READONLY_COMMAND = os.getenv("KIOSK_READONLY_COMMAND", "ro")
PASSWORD_COMMAND = os.getenv("KIOSK_PASSWORD_COMMAND", 'kvmd-htpasswd set "$1" -i')
RESTART_COMMAND = os.getenv("KIOSK_RESTART_COMMAND", "systemctl restart kvmd-nginx")
