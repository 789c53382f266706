"""
Document store for the hive service.

The whole state is one JSON document. Every mutation is a
load -> change -> save cycle run inside ``transaction()``, which holds the
store lock for the full cycle so two logins can never both see the same box
as free.
"""

import json
import logging
import os
import shutil
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from pydantic import ValidationError

from hive_api.models import Database, Hive, Settings

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Document could not be read or written"""


class DocumentStore:
    """
    Load/save whole-document storage with serialized read-modify-write.

    Subclasses implement ``_read`` and ``_write``.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()

    def _read(self) -> Database:
        raise NotImplementedError

    def _write(self, db: Database) -> None:
        raise NotImplementedError

    def load(self) -> Database:
        with self._lock:
            return self._read()

    def save(self, db: Database) -> None:
        with self._lock:
            self._write(db)

    @contextmanager
    def transaction(self) -> Iterator[Database]:
        """
        Yield the current document and save it when the block exits cleanly.

        If the block raises, nothing is written. Unchanged documents are not
        rewritten.
        """
        with self._lock:
            db = self._read()
            before = db.to_json()
            yield db
            if db.to_json() != before:
                self._write(db)


def default_document(default_hive: int = 1) -> Database:
    return Database(
        settings=Settings(current_hive=default_hive),
        hives=[Hive(id=default_hive, name=f"Hive {default_hive}")],
    )


class MemoryStore(DocumentStore):
    """In-process document, used by tests and throwaway runs"""

    def __init__(self, initial: Optional[Database] = None) -> None:
        super().__init__()
        self._doc = (initial or Database()).to_json()

    def _read(self) -> Database:
        return Database.model_validate(json.loads(json.dumps(self._doc)))

    def _write(self, db: Database) -> None:
        self._doc = db.to_json()


class JsonFileStore(DocumentStore):
    """Whole document in a single JSON file"""

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path)

    def init(self, default_hive: int = 1) -> None:
        """Create the file with an empty document when it does not exist yet."""
        with self._lock:
            if self.path.exists():
                return
            logger.info("Creating new database at %s", self.path)
            self._write(default_document(default_hive))

    def _read(self) -> Database:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Error reading database %s: %s", self.path, e)
            raise StoreError(f"cannot read {self.path}") from e
        try:
            return Database.model_validate(raw)
        except ValidationError as e:
            logger.error("Database %s does not match the expected layout: %s", self.path, e)
            raise StoreError(f"invalid document in {self.path}") from e

    def _write(self, db: Database) -> None:
        payload = json.dumps(db.to_json(), indent=2, ensure_ascii=False)
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".database-", suffix=".json", dir=self.path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            # mkstemp creates 0600; keep the mode the document already had
            if self.path.exists():
                shutil.copymode(self.path, tmp_name)
            else:
                os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, self.path)
        except OSError as e:
            logger.error("Error writing database %s: %s", self.path, e)
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StoreError(f"cannot write {self.path}") from e
