"""Creators of DBAPI connections for engines that cannot connect by URL alone.

SQLAlchemy calls a creator each time its pool needs a new connection. Both
creators return PyMySQL connections, so the `mysql+pymysql` dialect applies
unchanged.
"""

import logging
from collections.abc import Callable
from urllib.parse import urlsplit

import pymysql
import socks
from google.cloud.sql.connector import Connector
from google.cloud.sql.connector import IPTypes

from cloudsql_mysql.config import CHARSET
from cloudsql_mysql.config import ProviderSettings

logger = logging.getLogger(__name__)

IP_TYPES = {
    'public': IPTypes.PUBLIC,
    'private': IPTypes.PRIVATE,
    'psc': IPTypes.PSC,
}


def connector_creator(
    connector: Connector,
    settings: ProviderSettings,
    database: str = '',
) -> Callable[[], pymysql.Connection]:
    """Open connections to `settings.connection_name` through the Cloud SQL connector."""
    ip_type = IP_TYPES[settings.ip_type]

    def creator() -> pymysql.Connection:
        logger.debug('Dialing %s over its %s IP', settings.connection_name, settings.ip_type)
        return connector.connect(
            settings.connection_name,
            'pymysql',
            user=settings.username,
            password=settings.password.get_secret_value(),
            db=database or None,
            charset=CHARSET,
            ip_type=ip_type,
        )

    return creator


def socks_creator(settings: ProviderSettings, database: str = '') -> Callable[[], pymysql.Connection]:
    """Open connections to `settings.host` and `settings.port` through the SOCKS5 `settings.proxy`."""
    proxy = urlsplit(settings.proxy)

    def creator() -> pymysql.Connection:
        logger.debug('Dialing %s:%s through %s', settings.host, settings.port, settings.proxy)
        sock = socks.create_connection(
            (settings.host, settings.port),
            proxy_type=socks.SOCKS5,
            proxy_addr=proxy.hostname,
            proxy_port=proxy.port,
        )
        conn = pymysql.Connection(
            host=settings.host,
            port=settings.port,
            user=settings.username,
            password=settings.password.get_secret_value(),
            database=database or None,
            charset=CHARSET,
            defer_connect=True,
        )
        conn.connect(sock)
        return conn

    return creator
