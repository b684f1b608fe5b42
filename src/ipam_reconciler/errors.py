"""Error taxonomy shared by the transport and the reconciliation core."""
from typing import Optional


class ReconcileError(Exception):
    """Base class for every failure surfaced to the host.

    The message always names the entity type and the entity's human-readable
    name when they are known.
    """

    def __init__(
        self,
        message: str,
        entity_type: Optional[str] = None,
        entity_name: Optional[str] = None,
    ):
        self.message = message
        self.entity_type = entity_type
        self.entity_name = entity_name
        super().__init__(self._render())

    def _render(self) -> str:
        if self.entity_type and self.entity_name:
            return f"{self.entity_type} '{self.entity_name}': {self.message}"
        if self.entity_type:
            return f"{self.entity_type}: {self.message}"
        return self.message

    def with_entity(self, entity_type: str, entity_name: str) -> "ReconcileError":
        """Attach entity context if none was set where the error was raised."""
        if self.entity_type is None:
            self.entity_type = entity_type
        if self.entity_name is None:
            self.entity_name = entity_name
        self.args = (self._render(),)
        return self


class TransportError(ReconcileError):
    """Network or protocol failure talking to the appliance."""


class DecodeError(TransportError):
    """Response body did not have the expected shape."""


class NotFoundError(ReconcileError):
    """Zero remote records matched a lookup or read."""


class AmbiguousError(ReconcileError):
    """A lookup matched more than one remote object."""


class RemoteRejectedError(ReconcileError):
    """The appliance answered with a non-success status."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        errmsg: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_name: Optional[str] = None,
    ):
        self.status_code = status_code
        self.errmsg = errmsg
        super().__init__(message, entity_type=entity_type, entity_name=entity_name)


class ConfigValidationError(ReconcileError):
    """Configuration rejected before any request was sent."""

    def __init__(
        self,
        errors: list[str],
        entity_type: Optional[str] = None,
        entity_name: Optional[str] = None,
    ):
        self.errors = list(errors)
        super().__init__(
            "invalid configuration: " + "; ".join(self.errors),
            entity_type=entity_type,
            entity_name=entity_name,
        )


class UnsupportedOperationError(ReconcileError):
    """The entity type has no endpoint for the requested operation."""
