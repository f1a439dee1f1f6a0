"""MySQL roles."""

from cloudsql_mysql.context import OperationContext
from cloudsql_mysql.core import session
from cloudsql_mysql.errors import ExecutionError
from cloudsql_mysql.errors import NotFoundError
from cloudsql_mysql.errors import StructuralValidationError
from cloudsql_mysql.models import Attribute
from cloudsql_mysql.models import Role

# ER_NONEXISTING_GRANT, raised by SHOW GRANTS for an unknown role
_NONEXISTING_GRANT = 1141


class RoleResource:
    """Controller of `cloudsqlmysql_role` resources."""

    type_name = 'cloudsqlmysql_role'
    schema = (Attribute('name', required=True, requires_replace=True),)

    def __init__(self):
        self._engine = None

    def configure(self, provider_data):
        if provider_data is None:
            return
        self._engine = provider_data.connect()

    def create(self, ctx: OperationContext, desired: Role) -> Role:
        _validate_role(desired)
        with session(self._engine) as adapter:
            adapter.create_role(ctx, desired.name)
        return desired

    def read(self, ctx: OperationContext, state: Role) -> Role:
        """Check that the role still exists.

        Raises:
            NotFoundError: if the role has no grants, i.e. does not exist.
        """
        _validate_role(state)
        with session(self._engine) as adapter:
            try:
                grants = adapter.get_role_grants(ctx, state.name)
            except ExecutionError as exc:
                if exc.code != _NONEXISTING_GRANT:
                    raise
                grants = []

        if not grants:
            raise NotFoundError(f'Role {state.name!r} not found')
        return state

    def update(self, ctx: OperationContext, state: Role, desired: Role) -> Role:
        raise StructuralValidationError(f'{self.type_name} cannot be updated in place, it has to be replaced')

    def delete(self, ctx: OperationContext, state: Role):
        _validate_role(state)
        with session(self._engine) as adapter:
            adapter.drop_role(ctx, state.name)


def _validate_role(role: Role):
    if not role.name:
        raise StructuralValidationError('`name` of a role must not be empty')
