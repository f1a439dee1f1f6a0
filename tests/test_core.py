import pytest
import sqlalchemy as sa

from cloudsql_mysql.adapters.mysql import MySQLAdapter
from cloudsql_mysql.core import PlanAction
from cloudsql_mysql.core import _get_adapter
from cloudsql_mysql.core import plan_change
from cloudsql_mysql.core import session
from cloudsql_mysql.errors import ConnectionFailedError
from cloudsql_mysql.models import AuditRule
from cloudsql_mysql.models import DatabaseGrant
from cloudsql_mysql.resources.audit_rule import AuditRuleResource
from cloudsql_mysql.resources.grant_database import DatabaseGrantResource


def test_get_adapter_raises(test_sqlite_engine) -> None:
    with pytest.raises(ValueError, match='Unsupported database dialect: sqlite'):
        _get_adapter(test_sqlite_engine)


def test_session_yields_mysql_adapter_in_autocommit(fake_db) -> None:
    with session(fake_db) as adapter:
        assert isinstance(adapter, MySQLAdapter)
        assert not fake_db.connections[0].closed

    assert fake_db.options == [{'isolation_level': 'AUTOCOMMIT'}]
    assert fake_db.connections[0].closed


def test_session_closes_connection_on_error(fake_db) -> None:
    with pytest.raises(RuntimeError), session(fake_db):
        raise RuntimeError('boom')

    assert fake_db.connections[0].closed


def test_session_connect_failure(fake_db) -> None:
    class Unreachable(type(fake_db)):
        def connect(self):
            raise sa.exc.OperationalError('connect', {}, Exception(2013, 'Lost connection'))

    with pytest.raises(ConnectionFailedError, match='Lost connection'), session(Unreachable()):
        pass


def test_session_connect_failure_from_connection_creator(fake_db) -> None:
    class MissingCredentials(type(fake_db)):
        def connect(self):
            raise RuntimeError('Could not automatically determine credentials')

    with pytest.raises(ConnectionFailedError, match='Could not automatically determine'), session(MissingCredentials()):
        pass


def test_session_setup_failure_closes_connection(fake_db) -> None:
    class BrokenConnection(type(fake_db.connect())):
        def execution_options(self, **options):
            raise sa.exc.OperationalError('SET autocommit=1', {}, Exception(2006, 'MySQL server has gone away'))

    class BrokenDatabase(type(fake_db)):
        def connect(self):
            conn = BrokenConnection(self)
            self.connections.append(conn)
            return conn

    database = BrokenDatabase()

    with pytest.raises(ConnectionFailedError, match='Unable to set up the database session'), session(database):
        pass

    assert database.connections[0].closed


GRANT_SCHEMA = DatabaseGrantResource.schema
AUDIT_SCHEMA = AuditRuleResource.schema

GRANT = DatabaseGrant(database='app', user='reader', privileges=('SELECT', 'INSERT'))


def test_plan_create_and_delete() -> None:
    assert plan_change(GRANT_SCHEMA, None, GRANT) is PlanAction.CREATE
    assert plan_change(GRANT_SCHEMA, GRANT, None) is PlanAction.DELETE
    assert plan_change(GRANT_SCHEMA, None, None) is PlanAction.NOOP


def test_plan_privileges_ignore_order_and_case() -> None:
    desired = DatabaseGrant(database='app', user='reader', privileges=('insert', 'Select'))
    assert plan_change(GRANT_SCHEMA, GRANT, desired) is PlanAction.NOOP


@pytest.mark.parametrize(
    'desired',
    [
        DatabaseGrant(database='app', user='reader', privileges=('SELECT',)),
        DatabaseGrant(database='app', user='reader', privileges=('SELECT', 'INSERT'), with_grant_option=True),
        DatabaseGrant(database='app', user='reader', host='10.%', privileges=('SELECT', 'INSERT')),
        DatabaseGrant(database='app', role='reader', privileges=('SELECT', 'INSERT')),
        DatabaseGrant(database='other', user='reader', privileges=('SELECT', 'INSERT')),
    ],
)
def test_plan_any_grant_change_replaces(desired) -> None:
    assert plan_change(GRANT_SCHEMA, GRANT, desired) is PlanAction.REPLACE


def test_plan_audit_rule_update_in_place() -> None:
    prior = AuditRule(id=3, user='app_user', database='app', object='orders', operation='select', ops_result='B')
    desired = AuditRule(user='app_user', database='app', object='orders', operation='select', ops_result='S')

    assert plan_change(AUDIT_SCHEMA, prior, desired) is PlanAction.UPDATE


def test_plan_undeclared_computed_attribute_is_ignored() -> None:
    prior = AuditRule(id=3, user='app_user', database='app', object='orders', operation='select', ops_result='B')
    desired = AuditRule(user='app_user', database='app', object='orders', operation='select', ops_result='B')

    assert plan_change(AUDIT_SCHEMA, prior, desired) is PlanAction.NOOP
