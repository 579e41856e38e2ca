# src/awg_backend/errors.py
from __future__ import annotations


class AwgError(RuntimeError):
    """Base class for failures talking to (or about) the remote store."""


class RemoteUnavailable(AwgError):
    """A command or file transfer against the remote store failed."""


class MalformedDocument(AwgError):
    """The peer document or the client table could not be parsed."""


class IncompleteCredential(AwgError):
    """The key generator printed fewer lines than expected."""


class IdUnavailable(AwgError):
    """Interface status could not be queried or parsed."""


class NotFound(AwgError):
    pass


class PeerOperationFailed(AwgError):
    """Generic failure of a mutating operation; the cause is chained."""


class ConfigError(ValueError):
    pass
