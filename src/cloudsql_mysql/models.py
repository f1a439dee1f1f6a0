"""Resource models and the MySQL privilege catalog."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

DEFAULT_HOST = '%'


class Privilege(Enum):
    """Enumeration of database-level MySQL privileges.

    Members are listed in catalog order: the order in which privileges are
    reported when read back from the `mysql.db` grant table. Each member's value
    is the keyword text used in GRANT and REVOKE statements.
    """

    SELECT = 'SELECT'
    """Read rows from tables and views."""
    INSERT = 'INSERT'
    """Insert new rows."""
    UPDATE = 'UPDATE'
    """Update existing rows."""
    DELETE = 'DELETE'
    """Delete rows."""
    CREATE = 'CREATE'
    """Create databases and tables."""
    DROP = 'DROP'
    """Drop databases, tables and views."""
    REFERENCES = 'REFERENCES'
    """Create foreign key constraints."""
    INDEX = 'INDEX'
    """Create and drop indexes."""
    ALTER = 'ALTER'
    """Alter tables."""
    CREATE_TEMPORARY_TABLES = 'CREATE TEMPORARY TABLES'
    """Create temporary tables."""
    LOCK_TABLES = 'LOCK TABLES'
    """Use LOCK TABLES on tables the principal can SELECT from."""
    CREATE_VIEW = 'CREATE VIEW'
    """Create or alter views."""
    SHOW_VIEW = 'SHOW VIEW'
    """Use SHOW CREATE VIEW."""
    CREATE_ROUTINE = 'CREATE ROUTINE'
    """Create stored routines."""
    ALTER_ROUTINE = 'ALTER ROUTINE'
    """Alter or drop stored routines."""
    EXECUTE = 'EXECUTE'
    """Execute stored routines."""
    EVENT = 'EVENT'
    """Create, alter and drop events for the event scheduler."""
    TRIGGER = 'TRIGGER'
    """Create and drop triggers."""


@dataclass(frozen=True)
class GrantTarget:
    """The (database, principal, host) a privilege set applies to.

    Attributes:
        database (str): Name of the database, granted on as `<database>.*`.
        principal (str): Name of the user or role holding the privileges.
        host (str): Host pattern of the principal.
    """

    database: str
    principal: str
    host: str = DEFAULT_HOST


@dataclass(frozen=True)
class DatabaseGrant:
    """Representation of the privileges of a user or a role on a database.

    Exactly one of `user` and `role` must be set. All fields are part of the
    grant's identity: changing any of them replaces the grant.

    Attributes:
        database (str): Name of the database.
        privileges (tuple[str, ...]): Privilege keywords, in the casing they
            were declared with (e.g. ("select", "INSERT")).
        user (str | None): Name of the user the privileges are granted to.
        role (str | None): Name of the role the privileges are granted to.
        host (str): Host pattern of the principal. Defaults to "%".
        with_grant_option (bool): Whether the principal may grant its
            privileges on to others.
    """

    database: str
    privileges: tuple[str, ...]
    user: str | None = None
    role: str | None = None
    host: str = DEFAULT_HOST
    with_grant_option: bool = False

    @property
    def principal(self) -> str | None:
        return self.user if self.user is not None else self.role

    @property
    def target(self) -> GrantTarget:
        return GrantTarget(self.database, self.principal or '', self.host)


@dataclass(frozen=True)
class Role:
    """Representation of a MySQL role.

    Attributes:
        name (str): The name of the role.
    """

    name: str


@dataclass(frozen=True)
class AuditRule:
    """Representation of a rule of the Cloud SQL MySQL audit plugin.

    Attributes:
        user (str): User pattern the rule applies to.
        database (str): Database pattern the rule applies to.
        object (str): Object (table, view, ...) pattern the rule applies to.
        operation (str): Operation pattern, e.g. "select" or "*".
        ops_result (str): Which results to audit: "S" (successful), "U"
            (unsuccessful), "B" (both) or "E" (exclude).
        id (int | None): Identifier assigned by the server, None until the
            rule has been created.
    """

    user: str
    database: str
    object: str
    operation: str
    ops_result: str
    id: int | None = None

    def matches(self, other: 'AuditRule') -> bool:
        """Whether the non-id fields of both rules are equal, ignoring case."""
        return all(
            mine.casefold() == theirs.casefold()
            for mine, theirs in (
                (self.user, other.user),
                (self.database, other.database),
                (self.object, other.object),
                (self.operation, other.operation),
                (self.ops_result, other.ops_result),
            )
        )


@dataclass(frozen=True)
class AuditRuleOutcome:
    """Status of the last audit stored procedure call on a session.

    Only valid immediately after the call it was read for: every procedure
    call overwrites the session variables it is read from.
    """

    status: int
    message: str | None = None

    @property
    def failed(self) -> bool:
        return self.status != 0


@dataclass(frozen=True)
class Database:
    """Read-only information about a database.

    Attributes:
        name (str): The name of the database.
        default_character_set (str | None): Filled in when read.
        default_collation (str | None): Filled in when read.
    """

    name: str
    default_character_set: str | None = None
    default_collation: str | None = None


@dataclass(frozen=True)
class Attribute:
    """Declaration of one attribute of a resource's schema.

    Attributes:
        name (str): Field name on the resource model.
        required (bool): Whether the attribute must be set by the user.
        computed (bool): Whether the value may be filled in by the provider.
        default (Any): Value used when the attribute is not set.
        requires_replace (bool): Whether changing the value destroys and
            recreates the resource instead of updating it in place.
    """

    name: str
    required: bool = False
    computed: bool = False
    default: Any = None
    requires_replace: bool = False


class AuditProcedure(Enum):
    """Stored procedures of the Cloud SQL MySQL audit plugin, in the `mysql` schema."""

    CREATE = 'cloudsql_create_audit_rule'
    UPDATE = 'cloudsql_update_audit_rule'
    DELETE = 'cloudsql_delete_audit_rule'
    LIST = 'cloudsql_list_audit_rule'
