"""Provider lifecycle: from configuration to configured resource controllers."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from dataclasses import field

import sqlalchemy as sa
from google.auth.exceptions import GoogleAuthError
from google.cloud.sql.connector import Connector

from cloudsql_mysql.audit import SessionCriticalSection
from cloudsql_mysql.config import ProviderSettings
from cloudsql_mysql.config import load_settings
from cloudsql_mysql.core import ResourceController
from cloudsql_mysql.dialers import connector_creator
from cloudsql_mysql.dialers import socks_creator
from cloudsql_mysql.errors import ConfigurationError
from cloudsql_mysql.registry import ConnectionRegistry
from cloudsql_mysql.resources.audit_rule import AuditRuleResource
from cloudsql_mysql.resources.database import DatabaseDataSource
from cloudsql_mysql.resources.grant_database import DatabaseGrantResource
from cloudsql_mysql.resources.role import RoleResource

logger = logging.getLogger(__name__)


@dataclass
class ProviderData:
    """What every controller is configured with.

    Attributes:
        settings (ProviderSettings): The resolved provider settings.
        registry (ConnectionRegistry): Shared connection pools.
        audit_session (SessionCriticalSection): Shared by all audit rule operations.
        connector (Connector | None): Cloud SQL connector dialing
            `settings.connection_name`, None when connecting by host and port.
    """

    settings: ProviderSettings
    registry: ConnectionRegistry = field(default_factory=ConnectionRegistry)
    audit_session: SessionCriticalSection = field(default_factory=SessionCriticalSection)
    connector: Connector | None = None

    def connect(self, database: str = '') -> sa.Engine:
        """Get the connection pool for `database`, '' for no default database."""
        url = self.settings.connection_url(database)
        if self.settings.connection_name is not None:
            if self.connector is None:
                raise ConfigurationError(f'No Cloud SQL connector for {self.settings.connection_name}')
            return self.registry.acquire(url, creator=connector_creator(self.connector, self.settings, database))
        if self.settings.proxy is not None:
            return self.registry.acquire(url, creator=socks_creator(self.settings, database))
        return self.registry.acquire(url)

    def close(self):
        """Stop the connector's background certificate refresh."""
        if self.connector is not None:
            self.connector.close()


class CloudSqlMysqlProvider:
    """Manages grants, roles and audit rules of a Cloud SQL for MySQL instance.

    Args:
        version (str): Version reported to the runtime.
        registry (ConnectionRegistry | None): Connection registry to use, a new
            one by default.
        connector_factory (Callable[[], Connector] | None): Creates the Cloud SQL
            connector when `connection_name` is configured. Defaults to `Connector`.
    """

    type_name = 'cloudsqlmysql'

    def __init__(
        self,
        version: str = 'dev',
        registry: ConnectionRegistry | None = None,
        connector_factory: Callable[[], Connector] | None = None,
    ):
        self.version = version
        # An injected registry is empty, and therefore falsy, until first used
        self.registry = registry if registry is not None else ConnectionRegistry()
        self.connector_factory = connector_factory or Connector
        self.provider_data: ProviderData | None = None
        self._resources: dict[str, ResourceController] = {
            controller.type_name: controller
            for controller in (RoleResource(), DatabaseGrantResource(), AuditRuleResource())
        }
        self._data_sources: dict[str, ResourceController] = {
            controller.type_name: controller for controller in (DatabaseDataSource(),)
        }

    def configure(
        self,
        username: str | None = None,
        password: str | None = None,
        host: str | None = None,
        port: int | None = None,
        connection_name: str | None = None,
        private_ip: bool | None = None,
        psc: bool | None = None,
        proxy: str | None = None,
        log_level: str | None = None,
    ) -> ProviderData:
        """Resolve the settings and configure every controller.

        Arguments left as None are read from the CLOUDSQL_MYSQL_* environment
        variables.

        Raises:
            ConfigurationError: if the settings are missing or invalid, or no
                Google credentials are found for `connection_name`.
            ConnectionFailedError: if the instance cannot be connected to.
        """
        settings = load_settings(
            username=username,
            password=password,
            host=host,
            port=port,
            connection_name=connection_name,
            private_ip=private_ip,
            psc=psc,
            proxy=proxy,
            log_level=log_level,
        )
        logging.getLogger('cloudsql_mysql').setLevel(settings.log_level.upper())
        logger.info('Configuring provider %s %s for %s', self.type_name, self.version, settings.describe_target())

        provider_data = ProviderData(
            settings=settings,
            registry=self.registry,
            connector=self._connector(settings),
        )
        for controller in (*self._resources.values(), *self._data_sources.values()):
            controller.configure(provider_data)
        self.provider_data = provider_data
        return provider_data

    def _connector(self, settings: ProviderSettings) -> Connector | None:
        if settings.connection_name is None:
            return None
        try:
            return self.connector_factory()
        except GoogleAuthError as exc:
            raise ConfigurationError(f'Unable to create the Cloud SQL connector: {exc}') from exc

    def resources(self) -> dict[str, ResourceController]:
        return dict(self._resources)

    def data_sources(self) -> dict[str, ResourceController]:
        return dict(self._data_sources)
