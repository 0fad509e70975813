"""Contract for the persistent chat/presence connection."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class Transport(Protocol):
    """A connection that must be re-established after credential rotation.

    The session core only calls these around rotation and shutdown; the
    protocol spoken over the connection is the transport's own business.
    """

    def connect(self, account_id: str, access_token: str) -> None:
        ...

    def disconnect(self) -> None:
        ...

    def close(self) -> None:
        ...
