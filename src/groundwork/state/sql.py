"""
SQL-backed state store.

One row per logical name. Each upsert/delete runs in its own transaction, so a
write is durable as soon as the call returns. SQLite is the default target.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import JSON, DateTime, String, create_engine, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from groundwork.core.errors import StateStoreError
from groundwork.state.models import StateRecord, StateSnapshot

logger = structlog.get_logger()


class Base(DeclarativeBase):
    pass


class StateRecordModel(Base):
    __tablename__ = "state_records"

    name: Mapped[str] = mapped_column(String(255), primary_key=True)
    resource_type: Mapped[str] = mapped_column(String(255), nullable=False)
    identifier: Mapped[str] = mapped_column(String(1024), nullable=False)
    property_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    properties: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    outputs: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    dependencies: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class SqlStateStore:
    """State store on any SQLAlchemy database URL."""

    def __init__(self, database_url: str = "sqlite:///groundwork.state.db") -> None:
        self.database_url = database_url
        try:
            self._engine = create_engine(database_url, future=True)
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise StateStoreError(
                f"Failed to open state database: {exc}", details={"url": database_url}
            ) from exc
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False)

    def read_all(self) -> StateSnapshot:
        try:
            with self._session_factory() as session:
                models = session.execute(select(StateRecordModel)).scalars().all()
                return {model.name: self._model_to_record(model) for model in models}
        except SQLAlchemyError as exc:
            raise StateStoreError(f"Failed to read state: {exc}") from exc

    def upsert(self, record: StateRecord) -> None:
        try:
            with self._session_factory.begin() as session:
                model = session.get(StateRecordModel, record.name)
                if model is None:
                    model = StateRecordModel(name=record.name)
                    session.add(model)
                self._apply_record(model, record)
        except SQLAlchemyError as exc:
            raise StateStoreError(
                f"Failed to persist state: {exc}", details={"resource": record.name}
            ) from exc
        logger.debug("state_upserted", resource=record.name, url=self.database_url)

    def delete(self, name: str) -> None:
        try:
            with self._session_factory.begin() as session:
                session.execute(delete(StateRecordModel).where(StateRecordModel.name == name))
        except SQLAlchemyError as exc:
            raise StateStoreError(
                f"Failed to delete state: {exc}", details={"resource": name}
            ) from exc
        logger.debug("state_deleted", resource=name, url=self.database_url)

    def close(self) -> None:
        self._engine.dispose()

    @staticmethod
    def _apply_record(model: StateRecordModel, record: StateRecord) -> None:
        model.resource_type = record.resource_type
        model.identifier = record.identifier
        model.property_hash = record.property_hash
        model.properties = record.properties
        model.outputs = record.outputs
        model.dependencies = sorted(record.dependencies)
        model.updated_at = record.updated_at

    @staticmethod
    def _model_to_record(model: StateRecordModel) -> StateRecord:
        updated_at = model.updated_at
        if updated_at.tzinfo is None:
            # SQLite drops the offset; values are always written in UTC
            updated_at = updated_at.replace(tzinfo=timezone.utc)
        return StateRecord(
            name=model.name,
            resource_type=model.resource_type,
            identifier=model.identifier,
            property_hash=model.property_hash,
            properties=dict(model.properties or {}),
            outputs=dict(model.outputs or {}),
            dependencies=list(model.dependencies or []),
            updated_at=updated_at,
        )
