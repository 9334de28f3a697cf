"""Exceptions raised by the authority connectors."""


class AuthorityError(Exception):
    """Base class for connector failures that are not plain transport errors."""


class ConnectorNotReady(AuthorityError):
    """The service manifest has not been loaded yet."""


class ManifestUnavailable(AuthorityError):
    """The service manifest could not be fetched or decoded."""


class NoCompatibleVersion(AuthorityError):
    """None of the advertised protocol versions is supported by this client."""


class MalformedResponse(AuthorityError):
    """A response did not have the shape expected for its protocol version."""


class NotFound(AuthorityError):
    """The requested record does not exist at the source."""


class NoRecordFound(AuthorityError):
    """No child connector could supply a record for the given id."""

    def __init__(self, item_id: str) -> None:
        super().__init__(f"No record found for ID {item_id}")
        self.item_id = item_id


class UpstreamRejected(AuthorityError):
    """The local register refused to store a record."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"Local register rejected record (HTTP {status_code})")
        self.status_code = status_code
