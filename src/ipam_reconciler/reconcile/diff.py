"""Change planning between current and desired configurations.

Determines whether a resource must be created, updated in place or
replaced. Replacement itself (destroy then create) is driven by the host.
"""
from .entities import EntityDescriptor
from .schema import (
    ChangeType,
    FieldChange,
    ResourceChange,
    ResourceState,
)
from .validator import ConfigValidator


class DiffEngine:
    """Calculate the change needed to reach a desired configuration."""

    def calculate(
        self,
        descriptor: EntityDescriptor,
        state: ResourceState,
        desired: dict[str, str],
    ) -> ResourceChange:
        """
        Compare a resource's known configuration with a desired one.

        Values are compared after normalization, so "a" and "A" are equal
        for uppercased fields.

        Args:
            descriptor: Entity type of the resource
            state: Current local state
            desired: Desired configuration

        Returns:
            ResourceChange describing the required change
        """
        if not state.present:
            validator = ConfigValidator(descriptor)
            normalized = validator.normalize(desired)
            return ResourceChange(
                entity_type=descriptor.entity_type,
                change_type=ChangeType.CREATE,
                field_changes=[
                    FieldChange(field=name, current=None, desired=normalized.get(name))
                    for name in descriptor.field_names
                    if normalized.get(name) is not None
                ],
            )

        validator = ConfigValidator(descriptor)
        current = validator.normalize(state.config)
        wanted = validator.normalize(desired)

        changes = []
        for spec in descriptor.fields:
            if current.get(spec.name) != wanted.get(spec.name):
                changes.append(FieldChange(
                    field=spec.name,
                    current=current.get(spec.name),
                    desired=wanted.get(spec.name),
                    force_new=spec.force_new,
                ))

        if not changes:
            change_type = ChangeType.NO_CHANGE
        elif any(c.force_new for c in changes) or not descriptor.updatable:
            change_type = ChangeType.REPLACE
        else:
            change_type = ChangeType.UPDATE

        return ResourceChange(
            entity_type=descriptor.entity_type,
            change_type=change_type,
            identifier=state.id,
            field_changes=changes,
        )


def summarize_change(change: ResourceChange) -> str:
    """Generate a human-readable summary of a planned change."""
    if change.no_change:
        return f"{change.entity_type} {change.identifier}: no changes needed"

    target = change.identifier or "(new)"
    lines = [f"{change.entity_type} {target}: {change.change_type.value}"]
    for c in change.field_changes:
        marker = " (forces replacement)" if c.force_new and change.identifier else ""
        lines.append(f"  ~ {c.field}: {c.current!r} -> {c.desired!r}{marker}")
    return "\n".join(lines)
