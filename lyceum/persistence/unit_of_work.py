"""
Unit of work coordinating staged repository mutations.
"""

import logging
from typing import Callable, List, Tuple

from ..core.entities import AbstractEntity
from ..core.interfaces import UnitOfWorkPort
from .database import DatabaseManager, Query
from .repositories import BaseRepository, CourseRepository, EnrollmentRepository, StudentRepository


logger = logging.getLogger(__name__)

INSERT = "insert"
UPDATE = "update"
DELETE = "delete"


class UnitOfWork(UnitOfWorkPort):
    """Collects new, dirty and removed entities and commits them in one transaction.

    Entities are serialised when ``save_changes`` runs, so mutations made
    after staging are still persisted. Leaving the context manager discards
    anything not yet saved.
    """

    def __init__(self, database: DatabaseManager):
        self._database = database
        self._pending: List[Tuple[str, BaseRepository, AbstractEntity]] = []
        self.enrollments = EnrollmentRepository(database, self)
        self.students = StudentRepository(database, self, self.enrollments)
        self.courses = CourseRepository(database, self, self.enrollments)

    def register_new(self, repository: BaseRepository, entity: AbstractEntity) -> None:
        self._stage(INSERT, repository, entity)

    def register_dirty(self, repository: BaseRepository, entity: AbstractEntity) -> None:
        # An entity staged for insert is written with its latest state anyway.
        if self._is_staged(entity, (INSERT, UPDATE)):
            return
        self._stage(UPDATE, repository, entity)

    def register_removed(self, repository: BaseRepository, entity: AbstractEntity) -> None:
        self._pending = [op for op in self._pending if op[2] != entity]
        self._stage(DELETE, repository, entity)

    def save_changes(self) -> int:
        """Durably commit staged mutations and return how many were applied."""
        if not self._pending:
            return 0

        queries: List[Query] = []
        for action, repository, entity in self._pending:
            if action == INSERT:
                queries.append(repository.insert_query(entity))
            elif action == UPDATE:
                queries.append(repository.update_query(entity))
            else:
                queries.append(repository.delete_query(entity))

        self._database.execute_transaction(queries)
        applied = len(self._pending)
        self._pending.clear()
        logger.debug("Committed %d staged change(s)", applied)
        return applied

    def rollback(self) -> None:
        """Discard staged mutations."""
        if self._pending:
            logger.debug("Discarding %d uncommitted change(s)", len(self._pending))
        self._pending.clear()

    def _stage(self, action: str, repository: BaseRepository, entity: AbstractEntity) -> None:
        self._pending.append((action, repository, entity))

    def _is_staged(self, entity: AbstractEntity, actions: Tuple[str, ...]) -> bool:
        return any(action in actions and staged == entity for action, _, staged in self._pending)


def unit_of_work_factory(database: DatabaseManager) -> Callable[[], UnitOfWork]:
    """Return a callable producing a fresh unit of work per command."""
    def factory() -> UnitOfWork:
        return UnitOfWork(database)
    return factory
