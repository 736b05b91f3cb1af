"""Pydantic configuration models, one per collector."""

import logging
import os
import re
from typing import ClassVar, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils.errors import ConfigError

HOST_PORT_RE = re.compile(r'[\w.]+:\d{1,5}')


class CollectorConfig(BaseModel):
    """Common behaviour for collector configs populated from environment variables."""

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        extra="ignore",
        coerce_numbers_to_str=True,
        str_strip_whitespace=True,
    )

    required_fields: ClassVar[Tuple[str, ...]] = ()

    def validate_required(self) -> None:
        """
        Ensure every required field has a value.

        Raises:
            ConfigError: Naming the environment variables that are missing
        """
        fields = type(self).model_fields
        missing = [
            fields[name].alias or name
            for name in self.required_fields
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")


def _must_be_int(value: str, env_name: str) -> str:
    if value and not re.fullmatch(r'\d+', value):
        raise ValueError(f"{env_name} must be a valid integer")
    return value


class NginxConfig(CollectorConfig):
    """nginx stub_status endpoint."""
    host: str = Field(default="", alias="NGINXHOST")
    port: str = Field(default="", alias="NGINXLISTENPORT")
    status_uri: str = Field(default="", alias="NGINXSTATUSURI")

    required_fields: ClassVar[Tuple[str, ...]] = ("host", "port", "status_uri")


class HAProxyConfig(CollectorConfig):
    """HAProxy stats page."""
    host: str = Field(default="", alias="HAPROXYHOST")
    port: str = Field(default="", alias="HAPROXYPORT")
    status_uri: str = Field(default="", alias="HAPROXYSTATUSURI")

    required_fields: ClassVar[Tuple[str, ...]] = ("host", "port", "status_uri")


class MySQLConfig(CollectorConfig):
    """MySQL server and the status queries to run against it."""
    host: str = Field(default="", alias="MYSQL_HOST")
    port: str = Field(default="", alias="MYSQL_PORT")
    user: str = Field(default="", alias="MYSQL_USER")
    password: str = Field(default="", alias="MYSQL_PASSWORD")
    database: str = Field(default="", alias="MYSQL_DATABASE")
    queries: str = Field(default="", alias="MYSQL_QUERIES")
    prefixes: str = Field(default="", alias="MYSQL_PREFIXES")

    required_fields: ClassVar[Tuple[str, ...]] = (
        "host", "port", "user", "password", "database", "queries", "prefixes"
    )

    @field_validator('port')
    @classmethod
    def validate_port(cls, v: str) -> str:
        return _must_be_int(v, "MYSQL_PORT")

    @property
    def query_list(self) -> List[str]:
        """Non-blank queries separated by semicolons."""
        return [q.strip() for q in self.queries.split(";") if q.strip()]


class RedisConfig(CollectorConfig):
    """Redis server. Host and port fall back to localhost:6379."""
    host: str = Field(default="localhost", alias="REDISHOST")
    port: str = Field(default="6379", alias="REDISPORT")
    password: str = Field(default="", alias="REDISPASS")
    db: str = Field(default="", alias="REDISDB")

    @field_validator('host', mode='before')
    @classmethod
    def default_host(cls, v: Optional[str]) -> str:
        return v or "localhost"

    @field_validator('port', mode='before')
    @classmethod
    def default_port(cls, v: Optional[str]) -> str:
        return v or "6379"

    @field_validator('port')
    @classmethod
    def validate_port(cls, v: str) -> str:
        return _must_be_int(v, "REDISPORT")

    @field_validator('db')
    @classmethod
    def validate_db(cls, v: str) -> str:
        return _must_be_int(v, "REDISDB")

    @property
    def db_id(self) -> int:
        return int(self.db) if self.db else 0


class CouchbaseConfig(CollectorConfig):
    """Couchbase cluster REST API."""
    user: str = Field(default="", alias="COUCHBASE_USER")
    password: str = Field(default="", alias="COUCHBASE_PASSWORD")
    host: str = Field(default="", alias="COUCHBASE_HOST")
    port: str = Field(default="", alias="COUCHBASE_PORT")
    cluster_name: str = Field(default="", alias="CB_CLUSTER_NAME")

    required_fields: ClassVar[Tuple[str, ...]] = ("user", "password", "host", "port")

    @property
    def base_url(self) -> str:
        return f"{self.host}:{self.port}"


class JenkinsConfig(CollectorConfig):
    """Jenkins master. API user and key are optional but must come together."""
    host: str = Field(default="", alias="JENKINS_HOST")
    api_user: str = Field(default="", alias="JENKINS_API_USER")
    api_key: str = Field(default="", alias="JENKINS_API_KEY")

    required_fields: ClassVar[Tuple[str, ...]] = ("host",)

    def validate_required(self) -> None:
        super().validate_required()
        if self.api_user and not self.api_key:
            raise ConfigError("JENKINS_API_KEY must also be set when JENKINS_API_USER is set")
        if self.api_key and not self.api_user:
            raise ConfigError("JENKINS_API_USER must also be set when JENKINS_API_KEY is set")


class JiraConfig(CollectorConfig):
    """Jira server and the project whose open sprint is reported."""
    url: str = Field(default="", alias="JIRA_URL")
    auth_token: str = Field(default="", alias="JIRA_AUTH_TOKEN")
    project: str = Field(default="PAAS", alias="JIRA_PROJECT")

    required_fields: ClassVar[Tuple[str, ...]] = ("url", "auth_token")


class ZookeeperConfig(CollectorConfig):
    """Zookeeper server reached through four-letter-word commands."""
    host: str = Field(default="", alias="ZK_HOST")
    client_port: str = Field(default="", alias="ZK_CLIENTPORT")
    tick_time: str = Field(default="", alias="ZK_TICKTIME")
    data_dir: str = Field(default="", alias="ZK_DATADIR")

    required_fields: ClassVar[Tuple[str, ...]] = ("tick_time", "data_dir", "host", "client_port")

    @field_validator('tick_time')
    @classmethod
    def validate_tick_time(cls, v: str) -> str:
        return _must_be_int(v, "ZK_TICKTIME")

    @field_validator('client_port')
    @classmethod
    def validate_client_port(cls, v: str) -> str:
        return _must_be_int(v, "ZK_CLIENTPORT")

    @property
    def timeout(self) -> float:
        """Socket timeout in seconds, one tick."""
        return int(self.tick_time) / 1000.0


class RabbitMQConfig(CollectorConfig):
    """RabbitMQ management API."""
    user: str = Field(default="", alias="RABBITMQ_USER")
    password: str = Field(default="", alias="RABBITMQ_PASSWORD")
    host: str = Field(default="", alias="RABBITMQ_HOST")
    port: str = Field(default="", alias="RABBITMQ_PORT")

    required_fields: ClassVar[Tuple[str, ...]] = ("user", "password", "host", "port")


class FastlyConfig(CollectorConfig):
    """Fastly real-time analytics API."""
    api_key: str = Field(default="", alias="FASTLY_API_KEY")
    service_id: str = Field(default="", alias="SERVICE_ID")

    required_fields: ClassVar[Tuple[str, ...]] = ("api_key", "service_id")


class KrakenConfig(CollectorConfig):
    """Kraken load-test status page."""
    host: str = Field(default="", alias="KRAKEN_HOST")
    port: str = Field(default="", alias="KRAKEN_PORT")

    required_fields: ClassVar[Tuple[str, ...]] = ("host", "port")


class MemcachedConfig(CollectorConfig):
    """memcached server and the stats commands to issue."""
    host: str = Field(default="", alias="MEMCACHED_HOST")
    port: str = Field(default="", alias="MEMCACHED_PORT")
    commands: str = Field(default="", alias="COMMANDS")

    required_fields: ClassVar[Tuple[str, ...]] = ("host", "port", "commands")

    @field_validator('port')
    @classmethod
    def validate_port(cls, v: str) -> str:
        return _must_be_int(v, "MEMCACHED_PORT")

    @property
    def command_list(self) -> List[str]:
        return [c.strip() for c in self.commands.split(",") if c.strip()]


class SSLCheckConfig(CollectorConfig):
    """Hosts whose TLS certificates are inspected."""
    hosts: str = Field(default="", alias="SSLCHECK_HOSTS")
    root_cas: str = Field(default="", alias="SSLCHECK_ROOT_CAS")

    required_fields: ClassVar[Tuple[str, ...]] = ("hosts",)

    def host_list(self, logger: Optional[logging.Logger] = None) -> List[str]:
        """
        Split SSLCHECK_HOSTS into host:port entries, dropping malformed ones.

        Args:
            logger: Logger used to report ignored entries

        Returns:
            List[str]: Valid "host:port" entries in input order
        """
        hosts = []
        for entry in self.hosts.split(","):
            entry = entry.strip()
            if not entry:
                continue
            if HOST_PORT_RE.search(entry):
                hosts.append(entry)
            elif logger:
                logger.warning(f"Ignoring invalid host entry {entry!r}, expected host:port")
        return hosts

    def validate_required(self) -> None:
        super().validate_required()
        if not self.host_list():
            raise ConfigError("SSLCHECK_HOSTS contains no valid host:port entries")
        if self.root_cas and not (os.path.isfile(self.root_cas) and os.access(self.root_cas, os.R_OK)):
            raise ConfigError(f"Error reading CA file {self.root_cas}")


class DatastoreConfig(CollectorConfig):
    """Google Cloud Datastore project reached through a service-account key."""
    key_file: str = Field(default="/var/secrets/google/key.json", alias="DATASTORE_KEY_FILE")

    required_fields: ClassVar[Tuple[str, ...]] = ("key_file",)


class MongoConfig(CollectorConfig):
    """MongoDB server."""
    user: str = Field(default="", alias="MONGODB_USER")
    password: str = Field(default="", alias="MONGODB_PASSWORD")
    host: str = Field(default="", alias="MONGODB_HOST")
    port: str = Field(default="", alias="MONGODB_PORT")
    database: str = Field(default="", alias="MONGODB_DB")

    required_fields: ClassVar[Tuple[str, ...]] = ("user", "password", "host", "port", "database")
