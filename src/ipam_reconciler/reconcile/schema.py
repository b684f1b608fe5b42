"""Schema definitions for the reconciliation core.

Defines lifecycle operations, outcomes, per-resource state and plan results.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Operation(str, Enum):
    """Lifecycle operation on one managed object."""
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class OutcomeKind(str, Enum):
    """Interpreted result of one REST call."""
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class ClearPolicy(str, Enum):
    """When an operation clears the local identifier."""
    NEVER = "never"
    CLEAR_ON_NOT_FOUND = "clear_on_not_found"
    CLEAR_ALWAYS = "clear_always"


class ResourcePhase(str, Enum):
    """Lifecycle phase of one resource instance."""
    ABSENT = "absent"
    CREATING = "creating"
    PRESENT = "present"
    READING = "reading"
    UPDATING = "updating"
    DELETING = "deleting"


class ChangeType(str, Enum):
    """Type of change needed to reach a desired configuration."""
    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"
    NO_CHANGE = "no_change"


@dataclass
class Outcome:
    """Result of interpreting an appliance response."""
    kind: OutcomeKind
    identifier: Optional[str] = None
    fields: dict[str, str] = field(default_factory=dict)
    message: str = ""
    status_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.kind not in (OutcomeKind.FAILED, OutcomeKind.NOT_FOUND)

    @classmethod
    def created(cls, identifier: str, status_code: Optional[int] = None) -> "Outcome":
        return cls(OutcomeKind.CREATED, identifier=identifier, status_code=status_code)

    @classmethod
    def updated(cls, identifier: str, status_code: Optional[int] = None) -> "Outcome":
        return cls(OutcomeKind.UPDATED, identifier=identifier, status_code=status_code)

    @classmethod
    def deleted(cls, status_code: Optional[int] = None) -> "Outcome":
        return cls(OutcomeKind.DELETED, status_code=status_code)

    @classmethod
    def found(cls, fields: dict[str, str], status_code: Optional[int] = None) -> "Outcome":
        return cls(OutcomeKind.FOUND, fields=dict(fields), status_code=status_code)

    @classmethod
    def not_found(cls, message: str = "", status_code: Optional[int] = None) -> "Outcome":
        return cls(OutcomeKind.NOT_FOUND, message=message, status_code=status_code)

    @classmethod
    def failed(cls, message: str, status_code: Optional[int] = None) -> "Outcome":
        return cls(OutcomeKind.FAILED, message=message, status_code=status_code)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind.value,
            "identifier": self.identifier,
            "fields": self.fields,
            "message": self.message,
            "status_code": self.status_code,
        }


# Which identifier policy each operation applies. Delete is per entity type.
OPERATION_CLEAR_POLICY = {
    Operation.CREATE: ClearPolicy.NEVER,
    Operation.UPDATE: ClearPolicy.NEVER,
    Operation.READ: ClearPolicy.CLEAR_ON_NOT_FOUND,
}


def should_clear(policy: ClearPolicy, outcome: Outcome) -> bool:
    """Decide whether an interpreted outcome clears the local identifier."""
    if policy == ClearPolicy.CLEAR_ALWAYS:
        return True
    if policy == ClearPolicy.CLEAR_ON_NOT_FOUND:
        return outcome.kind == OutcomeKind.NOT_FOUND
    return False


@dataclass
class ResourceState:
    """Local state of one managed object.

    ``id`` is the identifier assigned by the appliance; an empty string means
    the object is not created yet, or was deleted.
    """
    entity_type: str
    config: dict[str, str] = field(default_factory=dict)
    id: str = ""
    phase: ResourcePhase = ResourcePhase.ABSENT

    def __post_init__(self):
        if self.id and self.phase == ResourcePhase.ABSENT:
            self.phase = ResourcePhase.PRESENT

    @property
    def present(self) -> bool:
        return bool(self.id)

    def settle(self) -> None:
        """Leave any transitional phase, according to the identifier."""
        self.phase = ResourcePhase.PRESENT if self.id else ResourcePhase.ABSENT

    def to_dict(self) -> dict:
        return {
            "entity_type": self.entity_type,
            "id": self.id,
            "phase": self.phase.value,
            "config": dict(self.config),
        }


@dataclass
class ValidationResult:
    """Result of config validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class FieldChange:
    """One configuration field that differs."""
    field: str
    current: Optional[str]
    desired: Optional[str]
    force_new: bool = False


@dataclass
class ResourceChange:
    """Change needed to move a resource to a desired configuration."""
    entity_type: str
    change_type: ChangeType
    identifier: str = ""
    field_changes: list[FieldChange] = field(default_factory=list)

    @property
    def no_change(self) -> bool:
        return self.change_type == ChangeType.NO_CHANGE

    @property
    def replace_fields(self) -> list[str]:
        return [c.field for c in self.field_changes if c.force_new]

    def to_dict(self) -> dict:
        return {
            "entity_type": self.entity_type,
            "change_type": self.change_type.value,
            "identifier": self.identifier,
            "changes": [
                {
                    "field": c.field,
                    "current": c.current,
                    "desired": c.desired,
                    "force_new": c.force_new,
                }
                for c in self.field_changes
            ],
        }
