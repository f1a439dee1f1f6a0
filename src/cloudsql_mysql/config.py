"""Provider settings.

Every setting can be given explicitly to the provider or through an environment
variable prefixed with `CLOUDSQL_MYSQL_` (e.g. `CLOUDSQL_MYSQL_USERNAME`).
Explicit values take precedence.

With `connection_name` set, connections are opened by the Cloud SQL connector
over the instance's public IP, private IP or Private Service Connect endpoint.
Without it they go to `host` and `port`, e.g. a Cloud SQL Auth Proxy listener,
optionally through a SOCKS5 `proxy`.
"""

import sqlalchemy as sa
from pydantic import Field
from pydantic import SecretStr
from pydantic import ValidationError
from pydantic import model_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict

from cloudsql_mysql.errors import ConfigurationError

DRIVER_NAME = 'mysql+pymysql'

CHARSET = 'utf8mb4'


class ProviderSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix='CLOUDSQL_MYSQL_', extra='ignore')

    username: str = Field(..., min_length=1)
    password: SecretStr = Field(...)
    connection_name: str | None = Field(None, pattern=r'^[a-z0-9\-]+:[a-z0-9\-]+:[a-z0-9\-]+$')
    private_ip: bool = False
    psc: bool = False
    host: str = Field('127.0.0.1', min_length=1)  # Cloud SQL Auth Proxy listener
    port: int = Field(3306, ge=1, le=65535)
    proxy: str | None = Field(None, pattern=r'^socks5://.*:\d+$')
    log_level: str = Field('INFO')

    @model_validator(mode='after')
    def _check_dialing(self) -> 'ProviderSettings':
        if self.private_ip and self.psc:
            raise ValueError('Only one of `private_ip` and `psc` can be set')
        if (self.private_ip or self.psc) and self.connection_name is None:
            raise ValueError('`private_ip` and `psc` require `connection_name`')
        if self.proxy is not None and self.connection_name is not None:
            raise ValueError('`proxy` can only be used with `host` and `port`, not with `connection_name`')
        return self

    @property
    def ip_type(self) -> str:
        """IP type of the instance the connector dials: "private", "psc" or "public"."""
        if self.private_ip:
            return 'private'
        if self.psc:
            return 'psc'
        return 'public'

    def connection_url(self, database: str = '') -> str:
        """Render the connection URL for `database` ('' for no default database).

        The URL also keys the connection registry. When the connector or the
        SOCKS proxy opens the connections, the URL carries the instance or proxy
        as query parameters so that different targets never share an engine.
        """
        query = {'charset': CHARSET}
        host = self.host
        port = self.port
        if self.connection_name is not None:
            query.update(cloudsql_instance=self.connection_name, ip_type=self.ip_type)
            host = port = None
        elif self.proxy is not None:
            query.update(proxy=self.proxy)

        url = sa.engine.URL.create(
            DRIVER_NAME,
            username=self.username,
            password=self.password.get_secret_value(),
            host=host,
            port=port,
            database=database or None,
            query=query,
        )
        return url.render_as_string(hide_password=False)

    def describe_target(self) -> str:
        if self.connection_name is not None:
            return f'{self.connection_name} ({self.ip_type} IP)'
        if self.proxy is not None:
            return f'{self.host}:{self.port} through {self.proxy}'
        return f'{self.host}:{self.port}'


def load_settings(**overrides) -> ProviderSettings:
    """Build the settings from `overrides` and the environment.

    Overrides that are None are treated as not given, so the environment
    variable applies.

    Raises:
        ConfigurationError: if a setting is missing or invalid.
    """
    given = {name: value for name, value in overrides.items() if value is not None}
    try:
        settings = ProviderSettings(**given)
    except ValidationError as exc:
        problems = '; '.join(
            f'{".".join(str(part) for part in error["loc"]) or "settings"}: {error["msg"]}' for error in exc.errors()
        )
        raise ConfigurationError(
            f'Invalid Cloud SQL MySQL provider configuration ({problems}). '
            'Set the values in the provider configuration or use the CLOUDSQL_MYSQL_* environment variables.',
        ) from exc
    if not settings.password.get_secret_value():
        raise ConfigurationError(
            'Missing Cloud SQL MySQL password. Set it in the provider configuration '
            'or use the CLOUDSQL_MYSQL_PASSWORD environment variable.',
        )
    return settings
