"""SQLAlchemy-backed directory store: one JSON snapshot row per (tenant, collection)."""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import JSON, Column, DateTime, String, UniqueConstraint
from sqlalchemy.engine import Engine
from sqlalchemy.sql import func

from .database import Base, build_session_factory
from .store import COLLECTION_MODELS, DirectoryStore, ensure_same_tenant

logger = logging.getLogger(__name__)


class CollectionSnapshot(Base):
    """Full contents of one tenant collection."""
    __tablename__ = "collection_snapshots"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), nullable=False, index=True)
    collection = Column(String(32), nullable=False)
    payload = Column(JSON, nullable=False, default=list)
    # Python-side default keeps sub-second precision on SQLite; tenants are listed in this order.
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("tenant_id", "collection", name="uq_snapshot_tenant_collection"),
    )


class SqlStore(DirectoryStore):
    def __init__(self, engine: Engine, *, create_tables: bool = False) -> None:
        super().__init__()
        self._session_factory = build_session_factory(engine)
        if create_tables:
            Base.metadata.create_all(bind=engine)

    def tenant_ids(self) -> list[UUID]:
        db = self._session_factory()
        try:
            rows = db.query(CollectionSnapshot.tenant_id).filter(
                CollectionSnapshot.collection == "tenants",
            ).order_by(CollectionSnapshot.created_at, CollectionSnapshot.id).all()
            return [UUID(row[0]) for row in rows]
        finally:
            db.close()

    def load_all(self, collection: str, tenant_id: UUID) -> list[BaseModel]:
        model = COLLECTION_MODELS.get(collection)
        if model is None:
            raise ValueError(f"Unknown collection: {collection}")
        db = self._session_factory()
        try:
            snapshot = db.query(CollectionSnapshot).filter(
                CollectionSnapshot.tenant_id == str(tenant_id),
                CollectionSnapshot.collection == collection,
            ).first()
            if not snapshot:
                return []
            return [model.model_validate(row) for row in snapshot.payload or []]
        finally:
            db.close()

    def replace_all(self, collection: str, tenant_id: UUID, items: list[BaseModel]) -> None:
        self.replace_collections(tenant_id, {collection: items})

    def replace_collections(self, tenant_id: UUID, batches: dict[str, list[BaseModel]]) -> None:
        """Write several collections in a single transaction."""
        for collection, items in batches.items():
            ensure_same_tenant(collection, tenant_id, items)

        db = self._session_factory()
        try:
            for collection, items in batches.items():
                payload = [item.model_dump(mode="json") for item in items]
                snapshot = db.query(CollectionSnapshot).filter(
                    CollectionSnapshot.tenant_id == str(tenant_id),
                    CollectionSnapshot.collection == collection,
                ).first()
                if snapshot:
                    snapshot.payload = payload
                else:
                    db.add(
                        CollectionSnapshot(
                            tenant_id=str(tenant_id),
                            collection=collection,
                            payload=payload,
                        )
                    )
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to write snapshot for tenant %s", tenant_id)
            raise
        finally:
            db.close()
