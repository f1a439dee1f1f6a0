"""Read-only information about a database."""

import logging

from cloudsql_mysql.context import OperationContext
from cloudsql_mysql.core import session
from cloudsql_mysql.errors import NotFoundError
from cloudsql_mysql.errors import StructuralValidationError
from cloudsql_mysql.models import Attribute
from cloudsql_mysql.models import Database

logger = logging.getLogger(__name__)


class DatabaseDataSource:
    """Controller of `cloudsqlmysql_database` data sources.

    Looks up the default character set and collation of an existing database.
    It never changes anything, so create, update and delete are rejected.
    """

    type_name = 'cloudsqlmysql_database'
    schema = (
        Attribute('name', required=True, requires_replace=True),
        Attribute('default_character_set', computed=True),
        Attribute('default_collation', computed=True),
    )

    def __init__(self):
        self._engine = None

    def configure(self, provider_data):
        if provider_data is None:
            return
        self._engine = provider_data.connect()

    def read(self, ctx: OperationContext, state: Database) -> Database:
        """Look up the database named by `state.name`.

        Raises:
            NotFoundError: if there is no such database.
        """
        if not state.name:
            raise StructuralValidationError('`name` of a database must not be empty')

        with session(self._engine) as adapter:
            row = adapter.get_database(ctx, state.name)

        if row is None:
            logger.debug("Database '%s' not found", state.name)
            raise NotFoundError(f"Database '{state.name}' not found")
        return Database(
            name=row['name'],
            default_character_set=row['default_character_set'],
            default_collation=row['default_collation'],
        )

    def create(self, ctx: OperationContext, desired: Database) -> Database:
        raise StructuralValidationError(f'{self.type_name} is a data source and cannot be created')

    def update(self, ctx: OperationContext, state: Database, desired: Database) -> Database:
        raise StructuralValidationError(f'{self.type_name} is a data source and cannot be updated')

    def delete(self, ctx: OperationContext, state: Database):
        raise StructuralValidationError(f'{self.type_name} is a data source and cannot be deleted')
