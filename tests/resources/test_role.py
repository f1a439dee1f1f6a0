import pytest

from cloudsql_mysql.errors import ExecutionError
from cloudsql_mysql.errors import NotFoundError
from cloudsql_mysql.errors import StructuralValidationError
from cloudsql_mysql.models import Role
from cloudsql_mysql.resources.role import RoleResource


@pytest.fixture
def resource(provider_data):
    resource = RoleResource()
    resource.configure(provider_data)
    return resource


def test_create(fake_db, ctx, resource) -> None:
    assert resource.create(ctx, Role(name='analyst')) == Role(name='analyst')
    assert fake_db.statements == [('CREATE ROLE :role_name', {'role_name': 'analyst'})]


def test_create_existing_role_fails(fake_db, ctx, resource, make_error) -> None:
    fake_db.respond('CREATE ROLE', make_error(1396, "Operation CREATE ROLE failed for 'analyst'@'%'"))

    with pytest.raises(ExecutionError, match='Operation CREATE ROLE failed') as exc_info:
        resource.create(ctx, Role(name='analyst'))

    assert exc_info.value.code == 1396


def test_read(fake_db, ctx, resource) -> None:
    fake_db.respond('SHOW GRANTS', [('GRANT USAGE ON *.* TO `analyst`@`%`',)])
    assert resource.read(ctx, Role(name='analyst')) == Role(name='analyst')


def test_read_missing_role(fake_db, ctx, resource, make_error) -> None:
    fake_db.respond('SHOW GRANTS', make_error(1141, "There is no such grant defined for user 'analyst' on host '%'"))

    with pytest.raises(NotFoundError, match="Role 'analyst' not found"):
        resource.read(ctx, Role(name='analyst'))


def test_read_role_without_grants(fake_db, ctx, resource) -> None:
    fake_db.respond('SHOW GRANTS', [])

    with pytest.raises(NotFoundError):
        resource.read(ctx, Role(name='analyst'))


def test_read_other_errors_propagate(fake_db, ctx, resource, make_error) -> None:
    fake_db.respond('SHOW GRANTS', make_error(1227, 'Access denied; you need the SELECT privilege'))

    with pytest.raises(ExecutionError, match='Access denied') as exc_info:
        resource.read(ctx, Role(name='analyst'))

    assert exc_info.value.code == 1227


def test_update_is_rejected(ctx, resource) -> None:
    with pytest.raises(StructuralValidationError):
        resource.update(ctx, Role(name='analyst'), Role(name='auditor'))


def test_delete(fake_db, ctx, resource) -> None:
    resource.delete(ctx, Role(name='analyst'))
    assert fake_db.statements == [('DROP ROLE :role_name', {'role_name': 'analyst'})]


def test_empty_name_issues_no_sql(fake_db, ctx, resource) -> None:
    for operation in (resource.create, resource.read, resource.delete):
        with pytest.raises(StructuralValidationError, match='must not be empty'):
            operation(ctx, Role(name=''))

    assert fake_db.statements == []
