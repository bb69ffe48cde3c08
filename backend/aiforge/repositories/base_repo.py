"""
Base repository with strict tenant isolation enforcement.

CRITICAL: All database operations on tenant-scoped models MUST go through
a TenantScopedRepository. No query can access data across tenants.

- Every read is "first/all rows matching filter AND tenant_id"; there is
  no raw primary-key lookup.
- create() forces tenant_id to the repository tenant, whatever the payload says.
- update()/delete() are bulk operations constrained by filter AND tenant_id.
  Targeting another tenant's row affects zero rows and raises nothing, so
  callers cannot tell "wrong tenant" from "does not exist".

Writes are flushed, not committed. The request handler owns the transaction.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Mapping, Optional, Sequence, TypeVar, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from aiforge.db_base import Base
from aiforge.platform.errors import NotFoundError

logger = logging.getLogger(__name__)

# Type variable for repository models
T = TypeVar("T", bound=Base)

OrderBy = Union[str, Sequence[str], None]

# Columns a client payload can never set
_PROTECTED_COLUMNS = ("id", "tenant_id")


class TenantScopedRepository(Generic[T], ABC):
    """
    Generic repository with a mandatory tenant.

    Subclasses name their model and may declare parent references that must
    belong to the same tenant:

        class TaskRepository(TenantScopedRepository[Task]):
            parent_refs = {"module_id": (Module, "Module")}

            def _get_model_class(self):
                return Task
    """

    # column -> (parent model, name used in NotFoundError)
    parent_refs: Dict[str, tuple] = {}

    def __init__(self, db_session: Session, tenant_id: str):
        """
        Initialize repository with tenant context.

        Args:
            db_session: SQLAlchemy database session
            tenant_id: Resolved request tenant (never from the request body)

        Raises:
            ValueError: If tenant_id is empty or None
        """
        if not tenant_id:
            raise ValueError("tenant_id is required and cannot be empty")

        self.db_session = db_session
        self.tenant_id = tenant_id
        self._model_class = self._get_model_class()
        self._columns = frozenset(self._model_class.__table__.columns.keys())

    @abstractmethod
    def _get_model_class(self) -> type[T]:
        """Return the SQLAlchemy model class for this repository."""
        pass

    def _get_tenant_column_name(self) -> str:
        return "tenant_id"

    @property
    def entity_name(self) -> str:
        return self._model_class.__name__

    def _enforce_tenant_scope(self, query: Query) -> Query:
        """
        Automatically scope query by tenant_id.

        This ensures NO query can access cross-tenant data.
        """
        tenant_column = getattr(self._model_class, self._get_tenant_column_name())
        return query.filter(tenant_column == self.tenant_id)

    def _check_columns(self, names, operation: str) -> None:
        unknown = [name for name in names if name not in self._columns]
        if unknown:
            raise ValueError(
                f"Unknown column(s) for {self.entity_name}.{operation}: {', '.join(sorted(unknown))}"
            )

    def _apply_where(self, query: Query, where: Optional[Mapping[str, Any]]) -> Query:
        if not where:
            return query
        self._check_columns(where.keys(), "where")

        tenant_column = self._get_tenant_column_name()
        supplied = where.get(tenant_column)
        if supplied is not None and supplied != self.tenant_id:
            # AND-ed with the scope below, so this matches nothing
            logger.warning(
                "Filter tenant_id differs from repository tenant",
                extra={
                    "repository_tenant_id": self.tenant_id,
                    "entity_type": self.entity_name,
                },
            )

        for name, value in where.items():
            column = getattr(self._model_class, name)
            if value is None:
                query = query.filter(column.is_(None))
            else:
                query = query.filter(column == value)
        return query

    def _apply_order(self, query: Query, order_by: OrderBy) -> Query:
        if not order_by:
            return query
        fields = [order_by] if isinstance(order_by, str) else list(order_by)
        for field in fields:
            descending = field.startswith("-")
            name = field.lstrip("-")
            self._check_columns([name], "order_by")
            column = getattr(self._model_class, name)
            query = query.order_by(column.desc() if descending else column.asc())
        return query

    def _scoped_query(self, where: Optional[Mapping[str, Any]] = None) -> Query:
        query = self.db_session.query(self._model_class)
        query = self._enforce_tenant_scope(query)
        return self._apply_where(query, where)

    def _clean_payload(self, data: Mapping[str, Any], operation: str) -> dict:
        payload = dict(data)
        for name in _PROTECTED_COLUMNS:
            if name in payload:
                removed = payload.pop(name)
                if name == "tenant_id" and removed != self.tenant_id:
                    logger.warning(
                        "tenant_id found in payload, removing it",
                        extra={
                            "repository_tenant_id": self.tenant_id,
                            "entity_type": self.entity_name,
                            "operation": operation,
                        },
                    )
        self._check_columns(payload.keys(), operation)
        return payload

    def _verify_parents(self, payload: Mapping[str, Any]) -> None:
        """Parent references must exist in this tenant, else NotFoundError."""
        for column_name, (parent_model, label) in self.parent_refs.items():
            parent_id = payload.get(column_name)
            if parent_id is None:
                continue
            exists = (
                self.db_session.query(parent_model.id)
                .filter(parent_model.id == parent_id, parent_model.tenant_id == self.tenant_id)
                .first()
            )
            if exists is None:
                logger.warning(
                    "Parent reference outside tenant or missing",
                    extra={
                        "tenant_id": self.tenant_id,
                        "entity_type": self.entity_name,
                        "parent": column_name,
                    },
                )
                raise NotFoundError(label)

    def _flush(self, operation: str) -> None:
        try:
            self.db_session.flush()
        except SQLAlchemyError as e:
            self.db_session.rollback()
            logger.error(
                f"Failed to {operation} entity",
                extra={
                    "tenant_id": self.tenant_id,
                    "entity_type": self.entity_name,
                    "error": str(e),
                },
            )
            raise

    def find_many(
        self,
        where: Optional[Mapping[str, Any]] = None,
        order_by: OrderBy = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[T]:
        """All rows matching `where` AND tenant_id."""
        query = self._apply_order(self._scoped_query(where), order_by)
        if offset:
            query = query.offset(offset)
        if limit:
            query = query.limit(limit)
        return query.all()

    def find_unique(self, where: Mapping[str, Any]) -> Optional[T]:
        """
        First row matching `where` AND tenant_id.

        Never a bare primary-key lookup: an id from another tenant yields None.
        """
        if not where:
            raise ValueError("find_unique requires a filter")
        return self._scoped_query(where).first()

    def get_by_id(self, entity_id: str) -> Optional[T]:
        return self.find_unique({"id": entity_id})

    def get_or_404(self, entity_id: str, code: Optional[str] = None) -> T:
        """
        Raises:
            NotFoundError: If the row does not exist in this tenant
        """
        entity = self.get_by_id(entity_id)
        if entity is None:
            raise NotFoundError(self.entity_name, code=code)
        return entity

    def count(self, where: Optional[Mapping[str, Any]] = None) -> int:
        return self._scoped_query(where).count()

    def exists(self, where: Mapping[str, Any]) -> bool:
        return self.find_unique(where) is not None

    def create(self, data: Mapping[str, Any]) -> T:
        """
        Create a row in this tenant.

        SECURITY: tenant_id in `data` is IGNORED. Repository tenant_id is ALWAYS used.

        Raises:
            NotFoundError: If a parent reference is outside this tenant
            ValueError: If `data` names an unknown column
        """
        payload = self._clean_payload(data, "create")
        self._verify_parents(payload)
        payload[self._get_tenant_column_name()] = self.tenant_id

        entity = self._model_class(**payload)
        self.db_session.add(entity)
        self._flush("create")
        self.db_session.refresh(entity)

        logger.info(
            "Entity created",
            extra={
                "tenant_id": self.tenant_id,
                "entity_id": getattr(entity, "id", None),
                "entity_type": self.entity_name,
            },
        )
        return entity

    def update(self, where: Mapping[str, Any], data: Mapping[str, Any]) -> int:
        """
        Update every row matching `where` AND tenant_id.

        Returns:
            Number of rows affected (0 for another tenant's id)
        """
        if not where:
            raise ValueError("update requires a filter")
        payload = self._clean_payload(data, "update")
        if not payload:
            return 0
        self._verify_parents(payload)

        try:
            affected = self._scoped_query(where).update(payload, synchronize_session="fetch")
        except SQLAlchemyError as e:
            self.db_session.rollback()
            logger.error(
                "Failed to update entity",
                extra={"tenant_id": self.tenant_id, "entity_type": self.entity_name, "error": str(e)},
            )
            raise
        self._flush("update")

        logger.info(
            "Entities updated",
            extra={"tenant_id": self.tenant_id, "entity_type": self.entity_name, "count": affected},
        )
        return affected

    def delete(self, where: Mapping[str, Any]) -> int:
        """
        Delete every row matching `where` AND tenant_id.

        Returns:
            Number of rows deleted (0 for another tenant's id)
        """
        if not where:
            raise ValueError("delete requires a filter")
        try:
            affected = self._scoped_query(where).delete(synchronize_session="fetch")
        except SQLAlchemyError as e:
            self.db_session.rollback()
            logger.error(
                "Failed to delete entity",
                extra={"tenant_id": self.tenant_id, "entity_type": self.entity_name, "error": str(e)},
            )
            raise
        self._flush("delete")

        logger.info(
            "Entities deleted",
            extra={"tenant_id": self.tenant_id, "entity_type": self.entity_name, "count": affected},
        )
        return affected
