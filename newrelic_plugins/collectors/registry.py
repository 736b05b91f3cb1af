"""Subcommand name to collector class mapping."""

from typing import Dict, Type

from .base import BaseCollector
from .couchbase_collector import CouchbaseCollector
from .datastore_collector import DatastoreCollector
from .fastly_collector import FastlyCollector
from .haproxy_collector import HAProxyCollector
from .jenkins_collector import JenkinsCollector
from .jira_collector import JiraCollector
from .kraken_collector import KrakenCollector
from .memcached_collector import MemcachedCollector
from .mongo_collector import MongoCollector
from .mysql_collector import MySQLCollector
from .nginx_collector import NginxCollector
from .rabbitmq_collector import RabbitMQCollector
from .redis_collector import RedisCollector
from .sslcheck_collector import SSLCheckCollector
from .zookeeper_collector import ZookeeperCollector

COLLECTORS: Dict[str, Type[BaseCollector]] = {
    cls.name: cls
    for cls in (
        NginxCollector,
        HAProxyCollector,
        MySQLCollector,
        RedisCollector,
        CouchbaseCollector,
        JenkinsCollector,
        JiraCollector,
        ZookeeperCollector,
        RabbitMQCollector,
        FastlyCollector,
        KrakenCollector,
        MemcachedCollector,
        SSLCheckCollector,
        DatastoreCollector,
        MongoCollector,
    )
}


def get_collector(name: str) -> Type[BaseCollector]:
    """
    Look up the collector class for a subcommand.

    Raises:
        KeyError: If no collector has that name
    """
    return COLLECTORS[name]
