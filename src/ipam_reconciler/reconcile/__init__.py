"""Reconciliation core - keeps appliance objects in line with declared configuration.

The engine turns a declared configuration into REST calls against an
IPAM/DNS appliance and the answers back into local state:
- Human-readable values are resolved into appliance identifiers
- Request parameters are built from declarative entity tables
- Loosely-typed JSON answers are interpreted into outcomes
- Local identifiers are set, kept or cleared by explicit policies

Usage:
    from ipam_reconciler.reconcile import ReconciliationEngine, ResourceState

    engine = ReconciliationEngine(client)
    state = ResourceState("dns_rr", {
        "server": "ns1.example.com",
        "name": "www.example.com",
        "type": "a",
        "value": "10.0.0.1",
    })
    await engine.create(state)   # state.id == "123", state.config["type"] == "A"
"""

from .engine import ReconciliationEngine, ResourceProvider
from .schema import (
    Operation,
    Outcome,
    OutcomeKind,
    ClearPolicy,
    ResourcePhase,
    ResourceState,
    ChangeType,
    FieldChange,
    ResourceChange,
    ValidationResult,
    should_clear,
)
from .entities import (
    EntityDescriptor,
    FieldSpec,
    Endpoint,
    ResolutionStep,
    ENTITY_TYPES,
    get_descriptor,
)
from .decode import decode_records, field_str
from .diff import DiffEngine, summarize_change
from .interpreter import ResponseInterpreter
from .parameters import ParameterBuilder
from .resolver import IdentifierResolver, LOOKUPS
from .validator import ConfigValidator

__all__ = [
    # Main engine
    "ReconciliationEngine",
    "ResourceProvider",
    # Schema classes
    "Operation",
    "Outcome",
    "OutcomeKind",
    "ClearPolicy",
    "ResourcePhase",
    "ResourceState",
    "ChangeType",
    "FieldChange",
    "ResourceChange",
    "ValidationResult",
    "should_clear",
    # Entity tables
    "EntityDescriptor",
    "FieldSpec",
    "Endpoint",
    "ResolutionStep",
    "ENTITY_TYPES",
    "get_descriptor",
    # Components (for advanced use)
    "decode_records",
    "field_str",
    "DiffEngine",
    "summarize_change",
    "ResponseInterpreter",
    "ParameterBuilder",
    "IdentifierResolver",
    "LOOKUPS",
    "ConfigValidator",
]
