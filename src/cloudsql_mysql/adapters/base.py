"""Abstract base class for database adapters.

Defines the SQL execution handle the resource controllers call against.
"""

from abc import ABC
from abc import abstractmethod
from collections.abc import Mapping
from typing import Any

from cloudsql_mysql.context import OperationContext
from cloudsql_mysql.models import AuditProcedure
from cloudsql_mysql.models import AuditRuleOutcome
from cloudsql_mysql.models import DatabaseGrant
from cloudsql_mysql.models import GrantTarget
from cloudsql_mysql.models import Privilege


class DatabaseAdapter(ABC):
    """Abstract base class for database-specific operations.

    An adapter wraps a single connection, i.e. a single database session, for
    the duration of one resource operation. Each adapter must implement methods
    for:
    - Executing statements and queries
    - Reading the grant, role, database and audit rule state
    - Granting and revoking privileges, creating and dropping roles
    - Calling the audit rule stored procedures
    """

    def __init__(self, conn):
        """Initialize the adapter with a database connection.

        Args:
            conn: Database connection object (e.g., SQLAlchemy connection)
        """
        self.conn = conn

    # ===== Statement Execution Methods =====

    @abstractmethod
    def execute(self, ctx: OperationContext, statement: str, params: Mapping[str, Any] | None = None) -> int:
        """Execute a statement that returns no rows.

        Returns:
            Number of rows affected
        """

    @abstractmethod
    def query(
        self,
        ctx: OperationContext,
        statement: str,
        params: Mapping[str, Any] | None = None,
    ) -> list[Mapping[str, Any]]:
        """Execute a statement and return all of its rows."""

    @abstractmethod
    def query_row(
        self,
        ctx: OperationContext,
        statement: str,
        params: Mapping[str, Any] | None = None,
    ) -> Mapping[str, Any] | None:
        """Execute a statement and return its first row, or None if there is none."""

    # ===== State Retrieval Methods =====

    @abstractmethod
    def get_privilege_row(self, ctx: OperationContext, target: GrantTarget) -> Mapping[str, Any] | None:
        """Get the row of privilege flags for a grant target.

        Returns:
            Mapping of flag column name to flag value, or None if there is no row
        """

    @abstractmethod
    def get_role_grants(self, ctx: OperationContext, role_name: str) -> list[str]:
        """Get the GRANT statements that describe a role's privileges."""

    @abstractmethod
    def get_database(self, ctx: OperationContext, database_name: str) -> Mapping[str, Any] | None:
        """Get the name, default character set and default collation of a database."""

    # ===== Permission Manipulation Methods =====

    @abstractmethod
    def grant(self, ctx: OperationContext, grant: DatabaseGrant, privileges: tuple[Privilege, ...]) -> str:
        """Grant privileges on a database.

        Returns:
            The statement that was executed
        """

    @abstractmethod
    def revoke(self, ctx: OperationContext, grant: DatabaseGrant, privileges: tuple[Privilege, ...]) -> str:
        """Revoke privileges on a database, and the grant option if the grant has it.

        Returns:
            The statement that was executed
        """

    @abstractmethod
    def create_role(self, ctx: OperationContext, role_name: str):
        """Create a new role."""

    @abstractmethod
    def drop_role(self, ctx: OperationContext, role_name: str):
        """Drop a role."""

    # ===== Audit Rule Procedure Methods =====

    @abstractmethod
    def call_audit_procedure(self, ctx: OperationContext, procedure: AuditProcedure, *args: Any) -> list[tuple]:
        """Call an audit rule stored procedure.

        The procedure writes its outcome into session variables, which must be
        read with `get_procedure_outcome` on this same adapter.

        Args:
            procedure: The audit rule procedure to call
            args: The procedure's arguments, without the sync flag and output variables

        Returns:
            The rows returned by the procedure, if any
        """

    @abstractmethod
    def get_procedure_outcome(self, ctx: OperationContext) -> AuditRuleOutcome:
        """Read the outcome of the last audit rule procedure call on this session."""
