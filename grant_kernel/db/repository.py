"""
Module: grant_kernel.db.repository
Responsibility: Generic CRUD access to one ORM model -- the "fetch all
    records of type X / create / update / delete record X" collaborator the
    approval, rollup and repayment logic is written against.
Architecture position: Kernel > DB.  May import from db/base.py and
    exceptions.  MUST NOT import from modules or services.

Invariants enforced:
    - Session ownership: the repository flushes but never commits; the calling
      service owns the transaction boundary.
    - Failures surface as typed persistence errors: any SQLAlchemyError becomes
      StoreReadError (reads) or StoreWriteError (writes).

Failure modes:
    - RecordNotFoundError from require() / update() / delete() when the id is
      unknown.
    - StoreReadError / StoreWriteError wrapping the driver error.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from grant_kernel.db.base import Base
from grant_kernel.exceptions import (
    RecordNotFoundError,
    StoreReadError,
    StoreWriteError,
)
from grant_kernel.logging_config import get_logger

logger = get_logger("db.repository")

ModelType = TypeVar("ModelType", bound=Base)


class Repository(Generic[ModelType]):
    """
    CRUD over one mapped class.

    Contract:
        The caller passes the Session; writes are flushed so generated ids
        and constraint violations show up immediately, and committed (or
        rolled back) by the caller.

    Guarantees:
        - get_all() returns rows in creation order.
        - update() only touches attributes present in ``changes``.
    """

    def __init__(self, session: Session, model: type[ModelType], entity_type: str):
        self.session = session
        self.model = model
        self.entity_type = entity_type

    def get_all(self, order_by: Sequence[Any] = (), **filters: Any) -> list[ModelType]:
        """All rows, optionally filtered by column equality.

        Rows come back in creation order; ``order_by`` columns break ties
        between rows created in the same instant (falls back to id).
        """
        stmt = select(self.model).filter_by(**filters)
        if hasattr(self.model, "created_at"):
            stmt = stmt.order_by(self.model.created_at)
        stmt = stmt.order_by(*order_by, self.model.id)
        try:
            return list(self.session.scalars(stmt).all())
        except SQLAlchemyError as exc:
            raise StoreReadError(self.entity_type, str(exc)) from exc

    def get(self, record_id: Any) -> ModelType | None:
        try:
            return self.session.get(self.model, record_id)
        except SQLAlchemyError as exc:
            raise StoreReadError(self.entity_type, str(exc)) from exc

    def require(self, record_id: Any) -> ModelType:
        """Like get() but raises RecordNotFoundError when absent."""
        record = self.get(record_id)
        if record is None:
            raise RecordNotFoundError(self.entity_type, str(record_id))
        return record

    def add(self, record: ModelType) -> ModelType:
        try:
            self.session.add(record)
            self.session.flush()
        except SQLAlchemyError as exc:
            raise StoreWriteError(
                self.entity_type, "create", _record_id(record), str(exc),
            ) from exc
        logger.debug(
            "record_created",
            extra={"entity_type": self.entity_type, "record_id": _record_id(record)},
        )
        return record

    def update(self, record_id: Any, changes: Mapping[str, Any]) -> ModelType:
        record = self.require(record_id)
        for name, value in changes.items():
            if not hasattr(self.model, name):
                raise AttributeError(f"{self.model.__name__} has no attribute '{name}'")
            setattr(record, name, value)
        try:
            self.session.flush()
        except SQLAlchemyError as exc:
            raise StoreWriteError(
                self.entity_type, "update", str(record_id), str(exc),
            ) from exc
        return record

    def delete(self, record_id: Any) -> None:
        record = self.require(record_id)
        try:
            self.session.delete(record)
            self.session.flush()
        except SQLAlchemyError as exc:
            raise StoreWriteError(
                self.entity_type, "delete", str(record_id), str(exc),
            ) from exc
        logger.debug(
            "record_deleted",
            extra={"entity_type": self.entity_type, "record_id": str(record_id)},
        )

    def delete_many(self, records: Sequence[ModelType]) -> int:
        """Delete the given rows in one flush; returns how many were removed."""
        try:
            for record in records:
                self.session.delete(record)
            self.session.flush()
        except SQLAlchemyError as exc:
            raise StoreWriteError(self.entity_type, "delete", None, str(exc)) from exc
        return len(records)


def _record_id(record: Base) -> str | None:
    record_id = getattr(record, "id", None)
    return str(record_id) if record_id is not None else None
