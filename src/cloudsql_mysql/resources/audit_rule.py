"""Rules of the Cloud SQL MySQL audit plugin.

See https://cloud.google.com/sql/docs/mysql/db-audit
"""

from cloudsql_mysql.audit import AuditRuleProtocol
from cloudsql_mysql.context import OperationContext
from cloudsql_mysql.core import session
from cloudsql_mysql.errors import StructuralValidationError
from cloudsql_mysql.models import Attribute
from cloudsql_mysql.models import AuditRule


class AuditRuleResource:
    """Controller of `cloudsqlmysql_audit_rule` resources.

    All attributes but the server-assigned id can be updated in place.
    """

    type_name = 'cloudsqlmysql_audit_rule'
    schema = (
        Attribute('id', computed=True),
        Attribute('user', required=True),
        Attribute('database', required=True),
        Attribute('object', required=True),
        Attribute('operation', required=True),
        Attribute('ops_result', required=True),
    )

    def __init__(self):
        self._engine = None
        self._protocol = None

    def configure(self, provider_data):
        if provider_data is None:
            return
        self._engine = provider_data.connect()
        self._protocol = AuditRuleProtocol(provider_data.audit_session)

    def create(self, ctx: OperationContext, desired: AuditRule) -> AuditRule:
        _validate_fields(desired)
        with session(self._engine) as adapter:
            return self._protocol.create(adapter, ctx, desired)

    def read(self, ctx: OperationContext, state: AuditRule) -> AuditRule:
        _validate_id(state)
        with session(self._engine) as adapter:
            return self._protocol.read(adapter, ctx, state.id)

    def update(self, ctx: OperationContext, state: AuditRule, desired: AuditRule) -> AuditRule:
        _validate_id(state)
        _validate_fields(desired)
        with session(self._engine) as adapter:
            return self._protocol.update(
                adapter,
                ctx,
                AuditRule(
                    id=state.id,
                    user=desired.user,
                    database=desired.database,
                    object=desired.object,
                    operation=desired.operation,
                    ops_result=desired.ops_result,
                ),
            )

    def delete(self, ctx: OperationContext, state: AuditRule):
        _validate_id(state)
        with session(self._engine) as adapter:
            self._protocol.delete(adapter, ctx, state.id)


def _validate_fields(rule: AuditRule):
    missing = [
        name
        for name, value in (
            ('user', rule.user),
            ('database', rule.database),
            ('object', rule.object),
            ('operation', rule.operation),
            ('ops_result', rule.ops_result),
        )
        if not value
    ]
    if missing:
        raise StructuralValidationError(f'Audit rule attributes must not be empty: {", ".join(missing)}')


def _validate_id(rule: AuditRule):
    if rule.id is None:
        raise StructuralValidationError('The audit rule has no id, it was not created')
