import logging

from hive_api.config import DB_PATH, DEFAULT_HIVE
from hive_api.store import DocumentStore, JsonFileStore

logger = logging.getLogger(__name__)

store = JsonFileStore(DB_PATH)


def init_db():
    store.init(default_hive=DEFAULT_HIVE)
    logger.info("Database ready at %s", store.path)


def get_store() -> DocumentStore:
    return store
