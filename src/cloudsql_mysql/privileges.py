"""Conversion of `mysql.db` rows to privileges, and reconciliation with declared privileges."""

from collections.abc import Iterable
from collections.abc import Mapping
from typing import Any

from cloudsql_mysql.errors import StructuralValidationError
from cloudsql_mysql.models import Privilege

AFFIRMATIVE = 'Y'

GRANT_OPTION_FLAG = 'Grant_priv'

# Catalog order: privileges read back from the database are listed in this order
PRIVILEGE_FLAGS: tuple[tuple[str, Privilege], ...] = (
    ('Select_priv', Privilege.SELECT),
    ('Insert_priv', Privilege.INSERT),
    ('Update_priv', Privilege.UPDATE),
    ('Delete_priv', Privilege.DELETE),
    ('Create_priv', Privilege.CREATE),
    ('Drop_priv', Privilege.DROP),
    ('References_priv', Privilege.REFERENCES),
    ('Index_priv', Privilege.INDEX),
    ('Alter_priv', Privilege.ALTER),
    ('Create_tmp_table_priv', Privilege.CREATE_TEMPORARY_TABLES),
    ('Lock_tables_priv', Privilege.LOCK_TABLES),
    ('Create_view_priv', Privilege.CREATE_VIEW),
    ('Show_view_priv', Privilege.SHOW_VIEW),
    ('Create_routine_priv', Privilege.CREATE_ROUTINE),
    ('Alter_routine_priv', Privilege.ALTER_ROUTINE),
    ('Execute_priv', Privilege.EXECUTE),
    ('Event_priv', Privilege.EVENT),
    ('Trigger_priv', Privilege.TRIGGER),
)

FLAG_COLUMNS: tuple[str, ...] = tuple(flag for flag, _ in PRIVILEGE_FLAGS) + (GRANT_OPTION_FLAG,)

_BY_KEYWORD = {privilege.value.casefold(): privilege for privilege in Privilege}


def decode(row: Mapping[str, Any]) -> tuple[str, ...]:
    """Privilege keywords set in a `mysql.db` row, in catalog order.

    A flag that is missing or holds anything but "Y" counts as not set.
    """
    return tuple(privilege.value for flag, privilege in PRIVILEGE_FLAGS if row.get(flag) == AFFIRMATIVE)


def decode_grant_option(row: Mapping[str, Any]) -> bool:
    return row.get(GRANT_OPTION_FLAG) == AFFIRMATIVE


def reconcile(desired: Iterable[str], observed: Iterable[str]) -> tuple[str, ...]:
    """Merge declared privileges with the privileges observed in the database.

    The result has exactly the observed privileges, in observed order. Where a
    declared privilege matches an observed one ignoring case, the declared
    spelling is kept. Declared privileges that were not observed are dropped:
    the database is authoritative.

    Args:
        desired: Privileges as previously declared or stored.
        observed: Privileges decoded from the database, see `decode`.

    Returns:
        tuple[str, ...]: The privileges to store.
    """
    desired = tuple(desired)
    reconciled = []
    for observed_privilege in observed:
        folded = observed_privilege.casefold()
        reconciled.append(
            next(
                (desired_privilege for desired_privilege in desired if desired_privilege.casefold() == folded),
                observed_privilege,
            ),
        )
    return tuple(reconciled)


def to_privilege(name: str) -> Privilege:
    """Look up a privilege by keyword, ignoring case and surrounding whitespace.

    Raises:
        StructuralValidationError: if the name is not a database-level privilege.
    """
    privilege = _BY_KEYWORD.get(' '.join(name.split()).casefold())
    if privilege is None:
        raise StructuralValidationError(
            f'Unknown privilege {name!r}, expected one of: {", ".join(p.value for p in Privilege)}',
        )
    return privilege


def normalize_privileges(privileges: Iterable[str]) -> tuple[Privilege, ...]:
    """Validate declared privileges and map them to the catalog, keeping their order.

    Raises:
        StructuralValidationError: if there are no privileges, an unknown one or
            the same privilege twice.
    """
    normalized = tuple(to_privilege(name) for name in privileges)
    if not normalized:
        raise StructuralValidationError('At least one privilege must be given')
    duplicates = {privilege.value for privilege in normalized if normalized.count(privilege) > 1}
    if duplicates:
        raise StructuralValidationError(f'Privileges given more than once: {", ".join(sorted(duplicates))}')
    return normalized
