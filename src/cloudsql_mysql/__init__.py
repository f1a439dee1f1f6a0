"""Cloud SQL MySQL package."""

from cloudsql_mysql.context import OperationContext
from cloudsql_mysql.core import PlanAction
from cloudsql_mysql.core import plan_change
from cloudsql_mysql.errors import ConfigurationError
from cloudsql_mysql.errors import ConnectionFailedError
from cloudsql_mysql.errors import CorrelationError
from cloudsql_mysql.errors import ExecutionError
from cloudsql_mysql.errors import NotFoundError
from cloudsql_mysql.errors import OperationCancelledError
from cloudsql_mysql.errors import ProtocolOutcomeError
from cloudsql_mysql.errors import ProviderError
from cloudsql_mysql.errors import StructuralValidationError
from cloudsql_mysql.models import AuditRule
from cloudsql_mysql.models import Database
from cloudsql_mysql.models import DatabaseGrant
from cloudsql_mysql.models import Privilege
from cloudsql_mysql.models import Role
from cloudsql_mysql.provider import CloudSqlMysqlProvider
from cloudsql_mysql.registry import ConnectionRegistry

SELECT = Privilege.SELECT
INSERT = Privilege.INSERT
UPDATE = Privilege.UPDATE
DELETE = Privilege.DELETE
CREATE = Privilege.CREATE
DROP = Privilege.DROP
REFERENCES = Privilege.REFERENCES
INDEX = Privilege.INDEX
ALTER = Privilege.ALTER
CREATE_TEMPORARY_TABLES = Privilege.CREATE_TEMPORARY_TABLES
LOCK_TABLES = Privilege.LOCK_TABLES
CREATE_VIEW = Privilege.CREATE_VIEW
SHOW_VIEW = Privilege.SHOW_VIEW
CREATE_ROUTINE = Privilege.CREATE_ROUTINE
ALTER_ROUTINE = Privilege.ALTER_ROUTINE
EXECUTE = Privilege.EXECUTE
EVENT = Privilege.EVENT
TRIGGER = Privilege.TRIGGER
