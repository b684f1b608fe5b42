"""Base transport abstraction for IPAM/DNS appliances."""
import os
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

VERBS = ("get", "post", "put", "delete")


@dataclass
class ApplianceConfig:
    """Configuration for an IPAM/DNS appliance."""
    type: str
    name: str
    host: str
    username: str
    password: Optional[str] = None
    password_env: str = "SOLIDSERVER_PASSWORD"
    port: int = 443
    scheme: str = "https"
    timeout: int = 30
    retries: int = 3  # extra attempts after a failed connect
    verify_ssl: bool = True

    def get_password(self) -> str:
        """Get password from config or environment variable."""
        if self.password:
            return self.password
        return os.environ.get(self.password_env, "")


@dataclass
class TransportResponse:
    """Raw answer of one REST call."""
    status_code: int
    body: bytes = b""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class ApplianceClient(ABC):
    """Abstract base class for appliance REST transports.

    Implementations must be safe to share between concurrently reconciled
    resources: they hold connection state only.
    """

    def __init__(self, appliance_id: str, config: ApplianceConfig):
        self.appliance_id = appliance_id
        self.config = config

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def host(self) -> str:
        return self.config.host

    @abstractmethod
    async def request(
        self,
        verb: str,
        endpoint: str,
        parameters: Optional[dict[str, str]] = None,
    ) -> TransportResponse:
        """Execute a REST call.

        Args:
            verb: One of get, post, put, delete
            endpoint: Endpoint path relative to the appliance root (e.g. "rest/dns_rr_add")
            parameters: Flat key/value parameters

        Returns:
            TransportResponse with status code and body

        Raises:
            TransportError: If the call could not be completed
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release connection resources."""
        pass

    @staticmethod
    def check_verb(verb: str) -> str:
        """Normalize and validate an HTTP verb."""
        normalized = verb.lower()
        if normalized not in VERBS:
            raise ValueError(f"Unsupported HTTP verb: {verb}")
        return normalized

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False
