"""Privileges of a user or role on a database."""

import logging
import re
from dataclasses import replace

from cloudsql_mysql.context import OperationContext
from cloudsql_mysql.core import session
from cloudsql_mysql.errors import NotFoundError
from cloudsql_mysql.errors import StructuralValidationError
from cloudsql_mysql.models import DEFAULT_HOST
from cloudsql_mysql.models import Attribute
from cloudsql_mysql.models import DatabaseGrant
from cloudsql_mysql.privileges import decode
from cloudsql_mysql.privileges import decode_grant_option
from cloudsql_mysql.privileges import normalize_privileges
from cloudsql_mysql.privileges import reconcile

logger = logging.getLogger(__name__)

DATABASE_NAME_PATTERN = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_\-]*$')


def validate_grant(grant: DatabaseGrant):
    """Check the structural invariants of a grant.

    Raises:
        StructuralValidationError: if not exactly one of user and role is set,
            the database name is invalid or the privileges are invalid.
    """
    if grant.user is not None and grant.role is not None:
        raise StructuralValidationError('Only one of `user` and `role` can be set, got both')
    if grant.user is None and grant.role is None:
        raise StructuralValidationError('One of `user` and `role` must be set, got neither')
    if not grant.principal:
        raise StructuralValidationError('`user` or `role` must not be empty')
    if not DATABASE_NAME_PATTERN.match(grant.database):
        raise StructuralValidationError(f'`database` must be a correct name of a database, got {grant.database!r}')
    if not grant.host:
        raise StructuralValidationError('`host` must not be empty')


class DatabaseGrantResource:
    """Controller of `cloudsqlmysql_grant_database` resources.

    Every attribute is part of the grant's identity, so a change always replaces
    the grant: there is no in-place update.
    """

    type_name = 'cloudsqlmysql_grant_database'
    schema = (
        Attribute('database', required=True, requires_replace=True),
        Attribute('user', requires_replace=True),
        Attribute('role', requires_replace=True),
        Attribute('host', computed=True, default=DEFAULT_HOST, requires_replace=True),
        Attribute('with_grant_option', computed=True, default=False, requires_replace=True),
        Attribute('privileges', required=True, requires_replace=True),
    )

    def __init__(self):
        self._engine = None

    def configure(self, provider_data):
        if provider_data is None:
            return
        # Not connecting to a specific database
        self._engine = provider_data.connect()

    def create(self, ctx: OperationContext, desired: DatabaseGrant) -> DatabaseGrant:
        validate_grant(desired)
        privileges = normalize_privileges(desired.privileges)

        with session(self._engine) as adapter:
            adapter.grant(ctx, desired, privileges)
        return desired

    def read(self, ctx: OperationContext, state: DatabaseGrant) -> DatabaseGrant:
        """Refresh the privileges and grant option from the `mysql.db` table.

        Raises:
            NotFoundError: if the target has no row, or a row without privileges.
        """
        validate_grant(state)

        with session(self._engine) as adapter:
            row = adapter.get_privilege_row(ctx, state.target)

        if row is None:
            raise NotFoundError(
                f'No privileges found for {state.principal}@{state.host} on database {state.database}',
            )
        observed = decode(row)
        if not observed:
            raise NotFoundError(
                f'No privileges set for {state.principal}@{state.host} on database {state.database}',
            )

        privileges = reconcile(state.privileges, observed)
        if len(privileges) != len(state.privileges):
            # Either the GRANT did not apply everything or privileges were revoked since
            logger.warning(
                'Privileges of %s@%s on %s differ from the stored ones: stored %s, found %s',
                state.principal,
                state.host,
                state.database,
                list(state.privileges),
                list(observed),
            )
        return replace(state, privileges=privileges, with_grant_option=decode_grant_option(row))

    def update(self, ctx: OperationContext, state: DatabaseGrant, desired: DatabaseGrant) -> DatabaseGrant:
        raise StructuralValidationError(f'{self.type_name} cannot be updated in place, it has to be replaced')

    def delete(self, ctx: OperationContext, state: DatabaseGrant):
        validate_grant(state)
        privileges = normalize_privileges(state.privileges)

        with session(self._engine) as adapter:
            adapter.revoke(ctx, state, privileges)
