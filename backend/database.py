# backend/database.py
from fastapi import Request
from sqlalchemy.orm import declarative_base

Base = declarative_base()


# Pick the persistence backend configured in settings
def build_store(settings):
    if settings.STORE_BACKEND == "rest":
        from store.rest import RestRelationStore

        if not settings.REST_API_URL:
            raise ValueError("REST_API_URL is required when STORE_BACKEND=rest")
        return RestRelationStore(
            settings.REST_API_URL,
            api_key=settings.REST_API_KEY,
            timeout=settings.REST_TIMEOUT,
        )

    from store.snapshot import SnapshotStorage
    from store.sql import SqlRelationStore

    return SqlRelationStore(SnapshotStorage(settings.DATA_DIR), key=settings.SNAPSHOT_KEY)


def init_db(settings):
    store = build_store(settings)
    store.initialize()
    return store


# FastAPI dependency: the store owned by the running application
def get_store(request: Request):
    return request.app.state.store
