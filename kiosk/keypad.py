"""
Numeric keypad buffer with idle clear.

The kiosk keeps the typed digits in the Flask session between key presses.
If nothing is pressed for ``idle_seconds`` the buffer reads as empty.
"""

import time
from typing import Any, Callable, Dict, Optional

from kiosk.config import IDLE_SECONDS, MAX_TAG_LENGTH

BACKSPACE = "back"
CLEAR = "clear"


class KeypadBuffer:
    def __init__(
        self,
        digits: str = "",
        touched_at: Optional[float] = None,
        idle_seconds: int = IDLE_SECONDS,
        max_length: int = MAX_TAG_LENGTH,
        clock: Callable[[], float] = time.time,
    ):
        self._digits = digits
        self.touched_at = touched_at
        self.idle_seconds = idle_seconds
        self.max_length = max_length
        self._clock = clock

    def expired(self) -> bool:
        if self.touched_at is None:
            return False
        return self._clock() - self.touched_at >= self.idle_seconds

    @property
    def value(self) -> str:
        if self.expired():
            self.clear()
        return self._digits

    def press(self, key: str) -> str:
        """Apply a key press (a digit, ``back`` or ``clear``) and return the new value."""
        current = self.value
        key = str(key).strip()
        if key == CLEAR:
            self.clear()
            return ""
        if key == BACKSPACE:
            self._digits = current[:-1]
        elif key.isdigit() and len(key) == 1:
            if len(current) < self.max_length:
                self._digits = current + key
        else:
            raise ValueError(f"Unknown key: {key!r}")
        self.touched_at = self._clock() if self._digits else None
        return self._digits

    def clear(self) -> None:
        self._digits = ""
        self.touched_at = None

    def take(self) -> str:
        """Return the value and empty the buffer (submit)."""
        value = self.value
        self.clear()
        return value

    # -------- session round trip --------

    def to_session(self) -> Dict[str, Any]:
        return {"digits": self._digits, "touched_at": self.touched_at}

    @classmethod
    def from_session(cls, data: Optional[Dict[str, Any]], **kwargs) -> "KeypadBuffer":
        data = data or {}
        return cls(digits=str(data.get("digits", "")), touched_at=data.get("touched_at"), **kwargs)
