from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from fittrack.config import settings
from fittrack.profile.kv_store import SqlKeyValueStore

_raw_url = settings.database_url

if _raw_url.startswith("postgres://"):
    _raw_url = _raw_url.replace("postgres://", "postgresql://", 1)

engine = create_engine(_raw_url, pool_pre_ping=True)
session_factory = sessionmaker(engine, class_=Session, expire_on_commit=False)


@lru_cache(maxsize=1)
def get_kv_store() -> SqlKeyValueStore:
    return SqlKeyValueStore(session_factory, quota=settings.storage_quota)
