"""MySQL adapter for cloudsql_mysql.

Implements the statements for Cloud SQL for MySQL over a SQLAlchemy connection
using the PyMySQL driver.
"""

import logging
from collections.abc import Mapping
from functools import partial
from typing import Any

import sqlalchemy as sa

from cloudsql_mysql.adapters.base import DatabaseAdapter
from cloudsql_mysql.context import OperationContext
from cloudsql_mysql.errors import ConnectionFailedError
from cloudsql_mysql.errors import ExecutionError
from cloudsql_mysql.errors import OperationCancelledError
from cloudsql_mysql.models import AuditProcedure
from cloudsql_mysql.models import AuditRuleOutcome
from cloudsql_mysql.models import DatabaseGrant
from cloudsql_mysql.models import GrantTarget
from cloudsql_mysql.models import Privilege
from cloudsql_mysql.privileges import FLAG_COLUMNS

logger = logging.getLogger(__name__)


_PRIVILEGE_ROW_SQL = f"""
SELECT Host, Db, User, {', '.join(FLAG_COLUMNS)}
FROM mysql.db
WHERE Host = :host AND User = :principal AND Db = :database
"""

_DATABASE_SQL = """
SELECT SCHEMA_NAME AS name, DEFAULT_CHARACTER_SET_NAME AS default_character_set,
  DEFAULT_COLLATION_NAME AS default_collation
FROM INFORMATION_SCHEMA.SCHEMATA
WHERE SCHEMA_NAME = :database
"""

_PROCEDURE_OUTCOME_SQL = 'SELECT @outval AS status, @outmsg AS message'

# The mutating procedures take a trailing flag asking them to apply the change synchronously
_SYNC_FLAG_PROCEDURES = frozenset((AuditProcedure.CREATE, AuditProcedure.UPDATE, AuditProcedure.DELETE))


def quote_identifier(name: str) -> str:
    return '`' + name.replace('`', '``') + '`'


class MySQLAdapter(DatabaseAdapter):
    """MySQL-specific implementation of DatabaseAdapter.

    Literal values are always passed as bound parameters. PyMySQL interpolates
    them client side, so they are also accepted in statements such as GRANT and
    CREATE ROLE that the server cannot prepare.
    """

    def _execute(self, ctx: OperationContext, statement: str, params: Mapping[str, Any] | None = None):
        """Execute a statement, translating driver errors.

        No statement is started once the context has fired. If it fires while a
        statement runs, the statement is killed and OperationCancelledError is
        raised. A statement that completed before the kill reached the server
        stands.
        """
        logger.debug('SQL Statement: "%s"', statement.strip())
        interrupt = partial(self._interrupt, self._server_thread_id())
        with ctx.interrupting(interrupt):
            try:
                return self.conn.execute(sa.text(statement), dict(params or {}))
            except sa.exc.DBAPIError as exc:
                if ctx.cancelled:
                    raise OperationCancelledError(f'Interrupted "{statement.strip()}": {exc.orig}') from exc
                if exc.connection_invalidated:
                    raise ConnectionFailedError(
                        f'Connection lost while executing "{statement.strip()}": {exc.orig}',
                    ) from exc
                raise ExecutionError(statement.strip(), str(exc.orig), _error_code(exc)) from exc

    def _server_thread_id(self) -> int:
        return self.conn.connection.dbapi_connection.thread_id()

    def _interrupt(self, thread_id: int):
        """Kill the statement running on this session from a second pooled connection."""
        logger.info('Interrupting the statement running on connection %s', thread_id)
        try:
            with self.conn.engine.connect() as conn:
                conn.execute(sa.text('KILL QUERY :thread_id'), {'thread_id': thread_id})
        except sa.exc.SQLAlchemyError as exc:
            # The statement then runs to completion and the next one is not started
            logger.warning('Unable to interrupt the statement on connection %s: %s', thread_id, exc)

    # ===== Statement Execution Methods =====

    def execute(self, ctx: OperationContext, statement: str, params: Mapping[str, Any] | None = None) -> int:
        """Execute a statement that returns no rows."""
        return self._execute(ctx, statement, params).rowcount

    def query(
        self,
        ctx: OperationContext,
        statement: str,
        params: Mapping[str, Any] | None = None,
    ) -> list[Mapping[str, Any]]:
        """Execute a statement and return all of its rows."""
        return [dict(row) for row in self._execute(ctx, statement, params).mappings().fetchall()]

    def query_row(
        self,
        ctx: OperationContext,
        statement: str,
        params: Mapping[str, Any] | None = None,
    ) -> Mapping[str, Any] | None:
        """Execute a statement and return its first row."""
        row = self._execute(ctx, statement, params).mappings().first()
        return dict(row) if row is not None else None

    # ===== State Retrieval Methods =====

    def get_privilege_row(self, ctx: OperationContext, target: GrantTarget) -> Mapping[str, Any] | None:
        """Get the `mysql.db` row of a grant target."""
        return self.query_row(
            ctx,
            _PRIVILEGE_ROW_SQL,
            {'host': target.host, 'principal': target.principal, 'database': target.database},
        )

    def get_role_grants(self, ctx: OperationContext, role_name: str) -> list[str]:
        """Get the GRANT statements of a role."""
        rows = self._execute(ctx, 'SHOW GRANTS FOR :role_name', {'role_name': role_name}).fetchall()
        return [row[0] for row in rows]

    def get_database(self, ctx: OperationContext, database_name: str) -> Mapping[str, Any] | None:
        """Get a database from INFORMATION_SCHEMA."""
        return self.query_row(ctx, _DATABASE_SQL, {'database': database_name})

    # ===== Permission Manipulation Methods =====

    def grant(self, ctx: OperationContext, grant: DatabaseGrant, privileges: tuple[Privilege, ...]) -> str:
        """Grant privileges on a database to a user or role."""
        statement = (
            f'GRANT {", ".join(privilege.value for privilege in privileges)} '
            f'ON {quote_identifier(grant.database)}.* TO :principal@:host'
        )
        if grant.with_grant_option:
            statement += ' WITH GRANT OPTION'
        logger.info(
            'Granting %s on database %s to %s@%s',
            [privilege.value for privilege in privileges],
            grant.database,
            grant.principal,
            grant.host,
        )
        self.execute(ctx, statement, {'principal': grant.principal, 'host': grant.host})
        return statement

    def revoke(self, ctx: OperationContext, grant: DatabaseGrant, privileges: tuple[Privilege, ...]) -> str:
        """Revoke privileges on a database from a user or role."""
        revoked = [privilege.value for privilege in privileges]
        if grant.with_grant_option:
            revoked.append('GRANT OPTION')
        statement = f'REVOKE {", ".join(revoked)} ON {quote_identifier(grant.database)}.* FROM :principal@:host'
        logger.info('Revoking %s on database %s from %s@%s', revoked, grant.database, grant.principal, grant.host)
        self.execute(ctx, statement, {'principal': grant.principal, 'host': grant.host})
        return statement

    def create_role(self, ctx: OperationContext, role_name: str):
        """Create a new role."""
        logger.info('Creating ROLE %s', role_name)
        self.execute(ctx, 'CREATE ROLE :role_name', {'role_name': role_name})

    def drop_role(self, ctx: OperationContext, role_name: str):
        """Drop a role."""
        logger.info('Dropping ROLE %s', role_name)
        self.execute(ctx, 'DROP ROLE :role_name', {'role_name': role_name})

    # ===== Audit Rule Procedure Methods =====

    def call_audit_procedure(self, ctx: OperationContext, procedure: AuditProcedure, *args: Any) -> list[tuple]:
        """Call an audit rule stored procedure in the `mysql` schema."""
        params = {f'arg{index}': value for index, value in enumerate(args)}
        arguments = [f':{name}' for name in params]
        if procedure in _SYNC_FLAG_PROCEDURES:
            arguments.append('1')
        arguments += ['@outval', '@outmsg']
        statement = f'CALL mysql.{procedure.value}({", ".join(arguments)})'

        result = self._execute(ctx, statement, params)
        return [tuple(row) for row in result.fetchall()] if result.returns_rows else []

    def get_procedure_outcome(self, ctx: OperationContext) -> AuditRuleOutcome:
        """Read @outval and @outmsg, which the audit rule procedures set."""
        row = self.query_row(ctx, _PROCEDURE_OUTCOME_SQL)
        status = row['status'] if row is not None else None
        message = row['message'] if row is not None else None
        if isinstance(message, bytes):
            message = message.decode()
        # An unset status is read as success
        return AuditRuleOutcome(status=int(status) if status is not None else 0, message=message)


def _error_code(exc: sa.exc.DBAPIError) -> int | None:
    """MySQL error number of a driver error, e.g. 1141 for ER_NONEXISTING_GRANT."""
    args = getattr(exc.orig, 'args', ())
    return args[0] if args and isinstance(args[0], int) else None
