"""SQL table backend on SQLModel.

Stands in for the hosted tables during development and in tests. Session
work runs in a worker thread so the event loop keeps serving pages.
"""

import asyncio
import logging
from typing import Any

from pydantic import ValidationError
from sqlalchemy import Engine, Integer
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from ecocampus.records.tables import TABLES
from ecocampus.store.base import StoreError, TableBackend

logger = logging.getLogger(__name__)


def _model(table: str) -> type[SQLModel]:
    try:
        return TABLES[table]
    except KeyError:
        raise StoreError(f'relation "{table}" does not exist') from None


def _row_id(model: type[SQLModel], row_id: str) -> Any:
    """Cast a textual id to an integer key; text keys pass through unchanged."""
    column_type = model.__table__.c.id.type  # type: ignore[attr-defined]
    if not isinstance(column_type, Integer):
        return row_id
    try:
        return int(row_id)
    except ValueError:
        raise StoreError(f'invalid input syntax for type integer: "{row_id}"') from None


def _validate(model: type[SQLModel], row: dict[str, Any]) -> SQLModel:
    try:
        return model.model_validate(row)
    except ValidationError as e:
        raise StoreError(str(e)) from e


def _message(e: SQLAlchemyError) -> str:
    return str(getattr(e, "orig", None) or e)


class SqlTableBackend(TableBackend):
    """Executes table operations against a SQLAlchemy engine."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    async def select(
        self, table: str, order_by: str, descending: bool = False
    ) -> list[dict[str, Any]]:
        return await asyncio.to_thread(self._select, table, order_by, descending)

    async def insert(self, table: str, row: dict[str, Any]) -> None:
        await asyncio.to_thread(self._insert, table, row)

    async def update(self, table: str, row_id: str, values: dict[str, Any]) -> None:
        await asyncio.to_thread(self._update, table, row_id, values)

    async def delete(self, table: str, row_id: str) -> None:
        await asyncio.to_thread(self._delete, table, row_id)

    def _select(self, table: str, order_by: str, descending: bool) -> list[dict[str, Any]]:
        model = _model(table)
        column = getattr(model, order_by)
        stmt = select(model).order_by(column.desc() if descending else column)
        try:
            with Session(self.engine) as session:
                return [row.model_dump() for row in session.exec(stmt).all()]
        except SQLAlchemyError as e:
            raise StoreError(_message(e)) from e

    def _insert(self, table: str, row: dict[str, Any]) -> None:
        model = _model(table)
        # Table models skip validation on __init__, so validate explicitly
        record = _validate(model, row)
        try:
            with Session(self.engine) as session:
                session.add(record)
                session.commit()
        except SQLAlchemyError as e:
            raise StoreError(_message(e)) from e

    def _update(self, table: str, row_id: str, values: dict[str, Any]) -> None:
        model = _model(table)
        try:
            with Session(self.engine) as session:
                record = session.get(model, _row_id(model, row_id))
                if record is None:
                    # PostgREST treats an update matching no rows as success
                    logger.debug("Update on %s matched no row with id %s", table, row_id)
                    return
                validated = _validate(model, {**record.model_dump(), **values})
                for key in values:
                    setattr(record, key, getattr(validated, key))
                session.add(record)
                session.commit()
        except SQLAlchemyError as e:
            raise StoreError(_message(e)) from e

    def _delete(self, table: str, row_id: str) -> None:
        model = _model(table)
        try:
            with Session(self.engine) as session:
                record = session.get(model, _row_id(model, row_id))
                if record is None:
                    logger.debug("Delete on %s matched no row with id %s", table, row_id)
                    return
                session.delete(record)
                session.commit()
        except SQLAlchemyError as e:
            raise StoreError(_message(e)) from e
