"""Shared plumbing of the resource controllers.

This module contains the adapter factory, the per-operation database session,
the interface every resource controller implements and the comparison of
stored and declared state that decides how a change is applied.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Any
from typing import Protocol

import sqlalchemy as sa

from cloudsql_mysql.adapters.base import DatabaseAdapter
from cloudsql_mysql.adapters.mysql import MySQLAdapter
from cloudsql_mysql.context import OperationContext
from cloudsql_mysql.errors import ConnectionFailedError
from cloudsql_mysql.models import Attribute

log = logging.getLogger(__name__)


def _get_adapter(conn) -> DatabaseAdapter:
    """Factory function to get the appropriate adapter."""
    dialect = conn.engine.dialect.name

    adapters: dict[str, type[DatabaseAdapter]] = {
        'mysql': MySQLAdapter,
    }

    adapter_class = adapters.get(dialect)
    if not adapter_class:
        raise ValueError(f'Unsupported database dialect: {dialect}')

    return adapter_class(conn)


@contextmanager
def session(engine) -> Iterator[DatabaseAdapter]:
    """Check out one pooled connection and yield an adapter bound to it.

    Statements run in autocommit mode: GRANT, REVOKE and the role statements
    commit implicitly in MySQL anyway, and the audit rule procedures are not
    meant to run inside a transaction.

    Raises:
        ConnectionFailedError: if no connection can be checked out.
    """
    try:
        conn = engine.connect()
    # Connection creators raise their own error types
    except Exception as exc:
        raise ConnectionFailedError(f'Unable to connect to the Cloud SQL MySQL instance: {exc}') from exc

    with conn:
        try:
            conn.execution_options(isolation_level='AUTOCOMMIT')
        except sa.exc.SQLAlchemyError as exc:
            raise ConnectionFailedError(f'Unable to set up the database session: {exc}') from exc
        yield _get_adapter(conn)


class ResourceController(Protocol):
    """Operations the runtime invokes on a resource type.

    `configure` is called once with the provider data before any other
    operation. `create` and `update` return the state to store, `read` returns
    the state refreshed from the database. A NotFoundError from `read` means the
    resource was removed outside of the runtime's control.
    """

    type_name: str
    schema: tuple[Attribute, ...]

    def configure(self, provider_data) -> None: ...

    def create(self, ctx: OperationContext, desired) -> Any: ...

    def read(self, ctx: OperationContext, state) -> Any: ...

    def update(self, ctx: OperationContext, state, desired) -> Any: ...

    def delete(self, ctx: OperationContext, state) -> None: ...


class PlanAction(Enum):
    """How the runtime has to apply a declared resource."""

    NOOP = 1
    CREATE = 2
    UPDATE = 3
    REPLACE = 4
    DELETE = 5


def plan_change(schema: tuple[Attribute, ...], prior, desired) -> PlanAction:
    """Compare stored state with declared state.

    Args:
        schema: The attribute declarations of the resource type.
        prior: The stored state, or None if the resource does not exist yet.
        desired: The declared state, or None if the resource is no longer declared.

    Returns:
        PlanAction: REPLACE if any changed attribute requires replacement, UPDATE
            if other attributes changed, NOOP otherwise. Computed attributes that
            are not declared (None) are not compared.
    """
    if prior is None and desired is None:
        return PlanAction.NOOP
    if prior is None:
        return PlanAction.CREATE
    if desired is None:
        return PlanAction.DELETE

    changed = tuple(
        attribute
        for attribute in schema
        if not (attribute.computed and getattr(desired, attribute.name) is None)
        and _normalized(getattr(prior, attribute.name)) != _normalized(getattr(desired, attribute.name))
    )
    if changed:
        log.debug('Changed attributes: %s', [attribute.name for attribute in changed])
    if any(attribute.requires_replace for attribute in changed):
        return PlanAction.REPLACE
    if changed:
        return PlanAction.UPDATE
    return PlanAction.NOOP


def _normalized(value):
    """Sets of strings compare ignoring order and case."""
    if isinstance(value, tuple | list | frozenset | set) and all(isinstance(item, str) for item in value):
        return frozenset(item.casefold() for item in value)
    return value
