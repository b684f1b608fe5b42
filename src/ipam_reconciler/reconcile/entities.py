"""Entity-type descriptors.

Each managed object type is described by data: its fields, how they map to
request and response keys, its REST endpoints and the lookups needed to turn
human-readable values into appliance identifiers. The engine is generic over
these descriptors.
"""
from dataclasses import dataclass, field
from typing import Optional

from .schema import ClearPolicy, Operation


@dataclass(frozen=True)
class FieldSpec:
    """One configuration field of an entity type."""
    name: str
    remote: Optional[str] = None  # request parameter, None if only used for lookups
    read_key: Optional[str] = None  # key in read responses, None if not returned
    required: bool = True
    default: Optional[str] = None
    force_new: bool = False  # immutable after create
    choices: tuple[str, ...] = ()
    uppercase: bool = False
    address_family: Optional[int] = None  # 4 or 6
    numeric: bool = False
    description: str = ""


@dataclass(frozen=True)
class Endpoint:
    """REST endpoint for one operation."""
    verb: str
    path: str
    success_codes: frozenset[int] = frozenset({200})


@dataclass(frozen=True)
class ResolutionStep:
    """One lookup in a resolution chain.

    ``from_config`` maps lookup keys to configuration fields, ``from_resolved``
    maps lookup keys to outputs of earlier steps.
    """
    output: str
    kind: str
    from_config: dict[str, str] = field(default_factory=dict)
    from_resolved: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class EntityDescriptor:
    """Everything the engine needs to know about an entity type."""
    entity_type: str
    label: str
    name_field: str
    id_param: str
    fields: tuple[FieldSpec, ...]
    endpoints: dict[Operation, Endpoint]
    resolution: tuple[ResolutionStep, ...] = ()
    # resolved identifier name -> request parameter
    resolved_params: dict[str, str] = field(default_factory=dict)
    # read lists the parent's children filtered with WHERE <id_param>='<oid>'
    read_by_filter: bool = False
    delete_policy: ClearPolicy = ClearPolicy.CLEAR_ALWAYS

    def get_field(self, name: str) -> FieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(f"{self.entity_type} has no field {name}")

    @property
    def field_names(self) -> list[str]:
        return [spec.name for spec in self.fields]

    @property
    def force_new_fields(self) -> list[str]:
        return [spec.name for spec in self.fields if spec.force_new]

    @property
    def mutable_fields(self) -> list[str]:
        return [spec.name for spec in self.fields if not spec.force_new]

    @property
    def updatable(self) -> bool:
        return Operation.UPDATE in self.endpoints

    def endpoint(self, operation: Operation) -> Endpoint:
        return self.endpoints[operation]

    def display_name(self, config: dict[str, str]) -> str:
        return config.get(self.name_field) or "<unnamed>"


DNS_RR = EntityDescriptor(
    entity_type="dns_rr",
    label="DNS resource record",
    name_field="name",
    id_param="rr_id",
    fields=(
        FieldSpec("server", remote="dns_name", read_key="dns_name", force_new=True,
                  description="Name of the DNS server hosting the record."),
        FieldSpec("name", remote="rr_name", read_key="rr_full_name", force_new=True,
                  description="Fully qualified name of the record."),
        FieldSpec("type", remote="rr_type", read_key="rr_type", force_new=True,
                  choices=("A", "AAAA", "CNAME"), uppercase=True),
        FieldSpec("value", remote="value1", read_key="value1"),
        FieldSpec("ttl", remote="rr_ttl", read_key="ttl", required=False,
                  default="3600", numeric=True),
    ),
    endpoints={
        Operation.CREATE: Endpoint("post", "rest/dns_rr_add", frozenset({200, 201})),
        Operation.UPDATE: Endpoint("put", "rest/dns_rr_add", frozenset({200, 201})),
        Operation.READ: Endpoint("get", "rest/dns_rr_info", frozenset({200})),
        Operation.DELETE: Endpoint("delete", "rest/dns_rr_delete", frozenset({200, 204})),
    },
)

IP6_ALIAS = EntityDescriptor(
    entity_type="ip6_alias",
    label="IPv6 address alias",
    name_field="name",
    id_param="ip6_name_id",
    fields=(
        FieldSpec("space", force_new=True,
                  description="Name of the space the address belongs to."),
        FieldSpec("address", force_new=True, address_family=6,
                  description="IPv6 address the alias is associated to."),
        FieldSpec("name", remote="ip6_name", read_key="alias_name", force_new=True,
                  description="FQDN of the alias."),
        FieldSpec("type", remote="ip6_name_type", read_key="ip6_name_type", required=False,
                  default="CNAME", force_new=True, choices=("A", "CNAME"), uppercase=True),
    ),
    endpoints={
        Operation.CREATE: Endpoint("post", "rest/ip6_alias_add", frozenset({200, 201})),
        Operation.READ: Endpoint("get", "rest/ip6_alias_list", frozenset({200})),
        Operation.DELETE: Endpoint("delete", "rest/ip6_alias_delete", frozenset({200, 204})),
    },
    resolution=(
        ResolutionStep("site_id", "ip_site", from_config={"site_name": "space"}),
        ResolutionStep("ip6_id", "ip6_address",
                       from_config={"ip6_addr": "address"},
                       from_resolved={"site_id": "site_id"}),
    ),
    resolved_params={"ip6_id": "ip6_id"},
    read_by_filter=True,
)

IP_ALIAS = EntityDescriptor(
    entity_type="ip_alias",
    label="IPv4 address alias",
    name_field="name",
    id_param="ip_name_id",
    fields=(
        FieldSpec("space", force_new=True,
                  description="Name of the space the address belongs to."),
        FieldSpec("address", force_new=True, address_family=4,
                  description="IPv4 address the alias is associated to."),
        FieldSpec("name", remote="ip_name", read_key="alias_name", force_new=True,
                  description="FQDN of the alias."),
        FieldSpec("type", remote="ip_name_type", read_key="ip_name_type", required=False,
                  default="CNAME", force_new=True, choices=("A", "CNAME"), uppercase=True),
    ),
    endpoints={
        Operation.CREATE: Endpoint("post", "rest/ip_alias_add", frozenset({200, 201})),
        Operation.READ: Endpoint("get", "rest/ip_alias_list", frozenset({200})),
        Operation.DELETE: Endpoint("delete", "rest/ip_alias_delete", frozenset({200, 204})),
    },
    resolution=(
        ResolutionStep("site_id", "ip_site", from_config={"site_name": "space"}),
        ResolutionStep("ip_id", "ip_address",
                       from_config={"ip_addr": "address"},
                       from_resolved={"site_id": "site_id"}),
    ),
    resolved_params={"ip_id": "ip_id"},
    read_by_filter=True,
)

ENTITY_TYPES: dict[str, EntityDescriptor] = {
    descriptor.entity_type: descriptor
    for descriptor in (DNS_RR, IP6_ALIAS, IP_ALIAS)
}


def get_descriptor(entity_type: str) -> EntityDescriptor:
    """Look up an entity type by name."""
    try:
        return ENTITY_TYPES[entity_type]
    except KeyError:
        raise KeyError(f"Unknown entity type: {entity_type}") from None
