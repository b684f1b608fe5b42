"""Resolution of human-readable values into appliance identifiers.

Lookups are read-only list queries filtered with the appliance's WHERE
parameter. Nothing is cached: every operation resolves from the
configuration it was given.
"""
import ipaddress
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..appliance.base import ApplianceClient
from ..errors import (
    AmbiguousError,
    ConfigValidationError,
    DecodeError,
    NotFoundError,
    RemoteRejectedError,
)
from .decode import decode_records, field_str, first_field
from .entities import EntityDescriptor
from .parameters import where_equals

logger = logging.getLogger(__name__)


def hex_ip(address: str) -> str:
    """IPv4 address as the appliance stores it: 8 lowercase hex digits."""
    return f"{int(ipaddress.IPv4Address(address)):08x}"


def hex_ip6(address: str) -> str:
    """IPv6 address as the appliance stores it: 32 lowercase hex digits."""
    return ipaddress.IPv6Address(address).exploded.replace(":", "").lower()


@dataclass(frozen=True)
class LookupSpec:
    """How to find one kind of object."""
    label: str
    endpoint: str
    id_field: str
    columns: tuple[str, ...]  # lookup keys, in WHERE order
    describe_key: str  # key shown in error messages
    encoders: tuple[tuple[str, Callable[[str], str]], ...] = ()

    def encode(self, key: str, value: str) -> str:
        for name, encoder in self.encoders:
            if name == key:
                return encoder(value)
        return value


LOOKUPS: dict[str, LookupSpec] = {
    "ip_site": LookupSpec(
        label="IP space",
        endpoint="rest/ip_site_list",
        id_field="site_id",
        columns=("site_name",),
        describe_key="site_name",
    ),
    "ip6_address": LookupSpec(
        label="IPv6 address",
        endpoint="rest/ip6_address6_list",
        id_field="ip6_id",
        columns=("site_id", "ip6_addr"),
        describe_key="ip6_addr",
        encoders=(("ip6_addr", hex_ip6),),
    ),
    "ip_address": LookupSpec(
        label="IP address",
        endpoint="rest/ip_address_list",
        id_field="ip_id",
        columns=("site_id", "ip_addr"),
        describe_key="ip_addr",
        encoders=(("ip_addr", hex_ip),),
    ),
}

SUCCESS_CODES = frozenset({200, 204})


class IdentifierResolver:
    """Look up appliance identifiers."""

    def __init__(self, client: ApplianceClient):
        self.client = client

    async def resolve(self, kind: str, key_values: dict[str, str]) -> str:
        """
        Resolve one identifier.

        Args:
            kind: Lookup kind (see LOOKUPS)
            key_values: Values for every lookup column

        Returns:
            The single matching identifier

        Raises:
            ValueError: Unknown lookup kind
            ConfigValidationError: Missing or malformed key value
            NotFoundError: No object matched
            AmbiguousError: More than one object matched
            RemoteRejectedError: The appliance refused the query
            DecodeError: The response did not have the expected shape
            TransportError: The query could not be sent
        """
        if kind not in LOOKUPS:
            raise ValueError(f"Unknown lookup kind: {kind}")
        spec = LOOKUPS[kind]

        missing = [c for c in spec.columns if not key_values.get(c)]
        if missing:
            raise ConfigValidationError(
                [f"{spec.label} lookup needs {', '.join(missing)}"]
            )

        describe = key_values[spec.describe_key]
        clauses = []
        for column in spec.columns:
            try:
                value = spec.encode(column, key_values[column])
            except ValueError as e:
                raise ConfigValidationError(
                    [f"Invalid {column} '{key_values[column]}': {e}"]
                ) from e
            clauses.append(where_equals(column, value))

        response = await self.client.request(
            "get", spec.endpoint, {"WHERE": " AND ".join(clauses)}
        )

        if response.status_code not in SUCCESS_CODES:
            errmsg = self._errmsg(response.body)
            detail = f" ({errmsg})" if errmsg else ""
            raise RemoteRejectedError(
                f"Unable to look up {spec.label} {describe}: HTTP {response.status_code}{detail}",
                status_code=response.status_code,
                errmsg=errmsg,
            )

        records = decode_records(response.body)
        if not records:
            raise NotFoundError(f"Unable to find {spec.label}: {describe}")
        if len(records) > 1:
            raise AmbiguousError(
                f"{spec.label} {describe} matches {len(records)} objects"
            )

        identifier = field_str(records[0], spec.id_field)
        if identifier is None:
            raise DecodeError(
                f"{spec.label} {describe}: response has no {spec.id_field}"
            )

        logger.debug(f"Resolved {spec.label} {describe} -> {identifier}")
        return identifier

    async def resolve_chain(
        self, descriptor: EntityDescriptor, config: dict[str, str]
    ) -> dict[str, str]:
        """
        Run an entity type's resolution chain.

        Steps run in order; the first failure is raised and later lookups are
        not sent.
        """
        resolved: dict[str, str] = {}
        for step in descriptor.resolution:
            key_values = {key: config.get(name, "") for key, name in step.from_config.items()}
            for key, name in step.from_resolved.items():
                key_values[key] = resolved[name]
            resolved[step.output] = await self.resolve(step.kind, key_values)
        return resolved

    @staticmethod
    def _errmsg(body: bytes) -> Optional[str]:
        try:
            return first_field(decode_records(body), "errmsg")
        except DecodeError:
            return None
