"""Protocol for managing audit rules through the Cloud SQL audit stored procedures.

Each procedure call reports its outcome in the session variables `@outval` and
`@outmsg`, which have to be read with a separate SELECT on the same session.
The create procedure does not return the id of the new rule, so after creating
a rule all rules are listed and the new one is found by comparing its fields.
"""

import logging
import threading
from collections.abc import Iterable
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace

from cloudsql_mysql.adapters.base import DatabaseAdapter
from cloudsql_mysql.context import OperationContext
from cloudsql_mysql.errors import CorrelationError
from cloudsql_mysql.errors import NotFoundError
from cloudsql_mysql.errors import ProtocolOutcomeError
from cloudsql_mysql.models import AuditProcedure
from cloudsql_mysql.models import AuditRule
from cloudsql_mysql.models import AuditRuleOutcome

logger = logging.getLogger(__name__)

LIST_ALL = '*'


class SessionCriticalSection:
    """Exclusive region around a procedure call and the read of its outcome.

    One instance is shared by all audit rule operations of a provider process, so
    no other procedure call can overwrite the session variables in between.
    """

    def __init__(self):
        self._lock = threading.Lock()

    def locked(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def hold(self, operation: str) -> Iterator[None]:
        logger.debug('Waiting for the audit rule session for %s', operation)
        with self._lock:
            logger.debug('Holding the audit rule session for %s', operation)
            yield


def row_to_rule(row: tuple) -> AuditRule:
    """Convert a row of `cloudsql_list_audit_rule` (id, user, db, object, operation, result)."""
    rule_id, user, database, object_, operation, ops_result = row[:6]
    return AuditRule(
        id=int(rule_id),
        user=user,
        database=database,
        object=object_,
        operation=operation,
        ops_result=ops_result,
    )


def correlate(rows: Iterable[tuple], desired: AuditRule) -> AuditRule:
    """Find the first listed rule whose fields match `desired`, ignoring case.

    Raises:
        CorrelationError: if no listed rule matches.
    """
    for row in rows:
        rule = row_to_rule(row)
        if rule.matches(desired):
            return rule
    raise CorrelationError(
        f'The audit rule is not found after creation: no rule matches user={desired.user!r}, '
        f'database={desired.database!r}, object={desired.object!r}, operation={desired.operation!r}, '
        f'ops_result={desired.ops_result!r}',
    )


class AuditRuleProtocol:
    """Create, read, update and delete audit rules.

    Every operation holds the critical section from its procedure call until its
    outcome has been read. Failures are never retried.

    Args:
        critical_section (SessionCriticalSection): Shared by all operations of
            the provider process.
    """

    def __init__(self, critical_section: SessionCriticalSection):
        self.critical_section = critical_section

    def _call(self, adapter: DatabaseAdapter, ctx: OperationContext, procedure: AuditProcedure, *args) -> list[tuple]:
        """Invoke a procedure, then confirm its outcome."""
        logger.debug('Calling %s%s', procedure.value, args)
        rows = adapter.call_audit_procedure(ctx, procedure, *args)
        self._confirm(adapter, ctx, procedure)
        return rows

    def _confirm(self, adapter: DatabaseAdapter, ctx: OperationContext, procedure: AuditProcedure) -> AuditRuleOutcome:
        outcome = adapter.get_procedure_outcome(ctx)
        if outcome.failed:
            raise ProtocolOutcomeError(procedure.value, outcome.status, outcome.message)
        return outcome

    def create(self, adapter: DatabaseAdapter, ctx: OperationContext, rule: AuditRule) -> AuditRule:
        """Create a rule and return it with the id the server assigned to it.

        Raises:
            ProtocolOutcomeError: if the create or list procedure reported failure.
            CorrelationError: if the created rule is not in the listed rules.
        """
        with self.critical_section.hold('create'):
            logger.info('Creating audit rule for user %s on %s.%s', rule.user, rule.database, rule.object)
            self._call(
                adapter,
                ctx,
                AuditProcedure.CREATE,
                rule.user,
                rule.database,
                rule.object,
                rule.operation,
                rule.ops_result,
            )
            rows = self._call(adapter, ctx, AuditProcedure.LIST, LIST_ALL)
            created = correlate(rows, rule)

        logger.info('Created audit rule %s', created.id)
        return replace(rule, id=created.id)

    def read(self, adapter: DatabaseAdapter, ctx: OperationContext, rule_id: int) -> AuditRule:
        """Read a rule by id.

        Raises:
            NotFoundError: if there is no rule with the id.
        """
        with self.critical_section.hold('read'):
            rows = self._call(adapter, ctx, AuditProcedure.LIST, rule_id)

        if not rows:
            raise NotFoundError(f'Audit rule with id {rule_id} not found')
        return row_to_rule(rows[0])

    def update(self, adapter: DatabaseAdapter, ctx: OperationContext, rule: AuditRule) -> AuditRule:
        """Update all fields of an existing rule in place."""
        with self.critical_section.hold('update'):
            logger.info('Updating audit rule %s', rule.id)
            self._call(
                adapter,
                ctx,
                AuditProcedure.UPDATE,
                rule.id,
                rule.user,
                rule.database,
                rule.object,
                rule.operation,
                rule.ops_result,
            )
        return rule

    def delete(self, adapter: DatabaseAdapter, ctx: OperationContext, rule_id: int):
        with self.critical_section.hold('delete'):
            logger.info('Deleting audit rule %s', rule_id)
            self._call(adapter, ctx, AuditProcedure.DELETE, rule_id)
