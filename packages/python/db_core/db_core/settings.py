"""MongoDB connection settings used by db_core.

Applications may adjust the fields of ``db_core.settings`` at startup, before
the first ``get_db`` call.
Transactions need a replica set, so they stay off unless
``MONGO_USE_TRANSACTIONS`` is set.
"""
import os

from loguru import logger
from pydantic import BaseModel, Field


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class MongoSettings(BaseModel):
    """MongoDB configuration shared by the task repositories."""

    uri: str = Field(
        default_factory=lambda: os.getenv("MONGO_URI", "mongodb://mongo_default:27017")
    )
    db_name: str = Field(default_factory=lambda: os.getenv("MONGO_DB_NAME", "checklists"))
    use_transactions: bool = Field(
        default_factory=lambda: _env_flag("MONGO_USE_TRANSACTIONS")
    )


settings: MongoSettings = MongoSettings()
logger.info(
    "MongoSettings initialized with uri={uri} db_name={db_name} transactions={tx}",
    uri=settings.uri,
    db_name=settings.db_name,
    tx=settings.use_transactions,
)
