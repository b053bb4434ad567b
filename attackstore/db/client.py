import logging
from urllib.parse import urlsplit

from influxdb import InfluxDBClient

from attackstore.core.config import Settings

log = logging.getLogger(__name__)

DEFAULT_PORT = 8086


def client_kwargs(settings: Settings) -> dict:
    """Translate the configured connection string into InfluxDBClient arguments."""
    parts = urlsplit(settings.influxdb_connection_string.strip())
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise ValueError(
            f"{Settings.env_name('influxdb_connection_string')} must look like http(s)://host:port, "
            f"got {settings.influxdb_connection_string!r}"
        )
    kwargs = {
        "host": parts.hostname,
        "port": parts.port or DEFAULT_PORT,
        "username": settings.influxdb_username,
        "password": settings.influxdb_password,
        "database": settings.influxdb_database,
        "ssl": parts.scheme == "https",
        "verify_ssl": settings.influxdb_verify_ssl,
        "path": parts.path.strip("/"),
    }
    if settings.influxdb_timeout is not None:
        kwargs["timeout"] = settings.influxdb_timeout
    return kwargs


def connect(settings: Settings) -> InfluxDBClient:
    kwargs = client_kwargs(settings)
    log.info("Connecting to InfluxDB at %s:%s", kwargs["host"], kwargs["port"])
    return InfluxDBClient(**kwargs)


def create_database_if_not_exists(client: InfluxDBClient, database: str) -> bool:
    existing = {item.get("name") for item in client.get_list_database()}
    if database in existing:
        return False
    client.create_database(database)
    log.info("Created InfluxDB database %s", database)
    return True
