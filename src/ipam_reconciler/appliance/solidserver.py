"""SOLIDserver REST transport.

The appliance exposes its REST API under ``/rest/<service>``. Every call
carries the credentials as base64-encoded ``X-IPM-Username`` and
``X-IPM-Password`` headers, and the parameters url-encoded in the query
string, whatever the verb. Responses are JSON arrays of flat records.
"""
import base64
import logging
from typing import Optional

import httpx

from ..errors import TransportError
from ..utils.connection import with_retry
from ..utils.logging_config import timed
from .base import ApplianceClient, ApplianceConfig, TransportResponse

logger = logging.getLogger(__name__)


def _b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


class SolidServerClient(ApplianceClient):
    """REST client for a SOLIDserver appliance."""

    def __init__(
        self,
        appliance_id: str,
        config: ApplianceConfig,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(appliance_id, config)
        self._http: Optional[httpx.AsyncClient] = None
        self._http_transport = http_transport
        self._base_url = f"{config.scheme}://{config.host}:{config.port}"
        self._send_with_retry = with_retry(
            max_attempts=max(0, config.retries) + 1, min_wait=1, max_wait=10
        )(self._send)

    @property
    def base_url(self) -> str:
        return self._base_url

    def _auth_headers(self) -> dict[str, str]:
        return {
            "X-IPM-Username": _b64(self.config.username),
            "X-IPM-Password": _b64(self.config.get_password()),
            "Accept": "application/json",
        }

    def _ensure_client(self) -> httpx.AsyncClient:
        """Create the HTTP client on first use."""
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._auth_headers(),
                timeout=httpx.Timeout(self.config.timeout),
                verify=self.config.verify_ssl,
                transport=self._http_transport,
            )
            logger.debug(f"HTTP client created for {self.appliance_id} at {self._base_url}")
        return self._http

    async def _send(
        self, verb: str, endpoint: str, parameters: dict[str, str]
    ) -> httpx.Response:
        client = self._ensure_client()
        return await client.request(
            verb.upper(), f"/{endpoint.lstrip('/')}", params=parameters
        )

    @timed("request")
    async def request(
        self,
        verb: str,
        endpoint: str,
        parameters: Optional[dict[str, str]] = None,
    ) -> TransportResponse:
        """Execute a REST call against the appliance."""
        verb = self.check_verb(verb)
        params = dict(parameters or {})

        logger.debug(f"{self.appliance_id}: {verb.upper()} {endpoint} {sorted(params)}")
        try:
            resp = await self._send_with_retry(verb, endpoint, params)
        except httpx.HTTPError as e:
            raise TransportError(
                f"{verb.upper()} {endpoint} on {self.appliance_id} failed: {e}"
            ) from e

        logger.debug(f"{self.appliance_id}: {verb.upper()} {endpoint} -> HTTP {resp.status_code}")
        return TransportResponse(status_code=resp.status_code, body=resp.content)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http:
            await self._http.aclose()
            self._http = None
            logger.info(f"Closed HTTP client for {self.appliance_id}")
