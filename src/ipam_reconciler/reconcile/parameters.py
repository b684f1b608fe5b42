"""Request parameter construction.

Pure functions of the operation, the entity descriptor, the normalized
configuration and the resolved identifiers. No I/O.
"""
from .entities import EntityDescriptor
from .schema import Operation


def where_equals(column: str, value: str) -> str:
    """Build a WHERE clause comparing one column to a literal."""
    escaped = value.replace("'", "''")
    return f"{column}='{escaped}'"


class ParameterBuilder:
    """Map configurations to flat REST parameter sets."""

    def build(
        self,
        operation: Operation,
        descriptor: EntityDescriptor,
        config: dict[str, str],
        resolved_ids: dict[str, str],
        identifier: str = "",
    ) -> dict[str, str]:
        """
        Build the parameters for one request.

        Args:
            operation: Lifecycle operation
            descriptor: Entity type of the object
            config: Normalized configuration
            resolved_ids: Output of the resolution chain
            identifier: Local identifier (required for update, read, delete)

        Returns:
            Parameter dict ready for the transport

        Raises:
            ValueError: If an identifier or a resolved id is missing
        """
        if operation != Operation.CREATE and not identifier:
            raise ValueError(
                f"{operation.value} of {descriptor.entity_type} requires an identifier"
            )

        if operation == Operation.CREATE:
            params = self._resolved(descriptor, resolved_ids)
            params.update(self._fields(descriptor, config, mutable_only=False))
            return params

        if operation == Operation.UPDATE:
            params = {descriptor.id_param: identifier}
            params.update(self._resolved(descriptor, resolved_ids))
            params.update(self._fields(descriptor, config, mutable_only=True))
            return params

        if operation == Operation.READ and descriptor.read_by_filter:
            params = self._resolved(descriptor, resolved_ids)
            params["WHERE"] = where_equals(descriptor.id_param, identifier)
            return params

        return {descriptor.id_param: identifier}

    def _resolved(
        self, descriptor: EntityDescriptor, resolved_ids: dict[str, str]
    ) -> dict[str, str]:
        params = {}
        for name, param in descriptor.resolved_params.items():
            if not resolved_ids.get(name):
                raise ValueError(f"Missing resolved identifier '{name}' for {descriptor.entity_type}")
            params[param] = resolved_ids[name]
        return params

    def _fields(
        self,
        descriptor: EntityDescriptor,
        config: dict[str, str],
        mutable_only: bool,
    ) -> dict[str, str]:
        params = {}
        for spec in descriptor.fields:
            if spec.remote is None:
                continue
            if mutable_only and spec.force_new:
                continue
            value = config.get(spec.name)
            if value is None:
                continue
            params[spec.remote] = value.upper() if spec.uppercase else value
        return params
