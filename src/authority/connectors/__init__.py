"""Connector registry — maps configured connector types to connector classes."""

from authority.config import AuthorityConfig
from authority.connectors.base import BaseConnector, ResultRecord, ResultSet
from authority.connectors.custom import CustomConnector
from authority.connectors.metagrid import MetagridConnector
from authority.connectors.reconciliation import ReconciliationConnector


def _reconciliation(config: AuthorityConfig) -> BaseConnector:
    if not config.endpoint:
        raise ValueError("reconciliation connector needs an endpoint")
    return ReconciliationConnector(
        config.endpoint,
        config.register,
        prefix=config.prefix,
        process_lang=config.process_lang,
        accept_lang=config.accept_lang,
    )


def _metagrid(config: AuthorityConfig) -> BaseConnector:
    return MetagridConnector(config.register)


def _custom(config: AuthorityConfig) -> BaseConnector:
    if not config.endpoint:
        raise ValueError("custom connector needs the local register endpoint")
    return CustomConnector(
        config.endpoint,
        config.register,
        connectors=[create_connector(child) for child in config.connectors],
        editable=config.editable,
    )


CONNECTOR_TYPES = {
    "custom": _custom,
    "metagrid": _metagrid,
    "reconciliation": _reconciliation,
}


def create_connector(config: AuthorityConfig) -> BaseConnector:
    """Build the connector described by *config*, including any children."""
    factory = CONNECTOR_TYPES.get(config.connector)
    if factory is None:
        available = ", ".join(CONNECTOR_TYPES)
        raise ValueError(f"Unknown connector '{config.connector}'. Available: {available}")
    if not config.register:
        raise ValueError(f"{config.connector} connector needs a register name")
    return factory(config)


__all__ = [
    "CONNECTOR_TYPES", "BaseConnector", "CustomConnector", "MetagridConnector",
    "ReconciliationConnector", "ResultRecord", "ResultSet", "create_connector",
]
