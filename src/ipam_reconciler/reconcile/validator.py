"""Pre-flight validation of entity configurations.

Catches invalid configurations before any appliance communication.
"""
import ipaddress
from typing import Any

from ..errors import ConfigValidationError
from .entities import EntityDescriptor, FieldSpec
from .schema import ValidationResult

# DNS record types whose value must be an address of a given family
RECORD_VALUE_FAMILY = {
    "A": 4,
    "AAAA": 6,
}


def _address_version(value: str) -> int:
    try:
        return ipaddress.ip_address(value).version
    except ValueError:
        return 0


class ConfigValidator:
    """Validate and normalize configurations for one entity type."""

    def __init__(self, descriptor: EntityDescriptor):
        self.descriptor = descriptor

    def normalize(self, config: dict[str, Any]) -> dict[str, str]:
        """
        Return a normalized copy of a configuration.

        Applies defaults, strips whitespace, converts values to strings and
        uppercases fields the appliance treats case-sensitively. Unknown
        fields are carried over unchanged so ``validate`` can report them.
        """
        normalized: dict[str, str] = {}
        for key, value in config.items():
            if value is None:
                continue
            normalized[key] = str(value).strip()

        for spec in self.descriptor.fields:
            value = normalized.get(spec.name, "")
            if value == "" and spec.default is not None:
                value = spec.default
            if value == "":
                normalized.pop(spec.name, None)
                continue
            if spec.uppercase:
                value = value.upper()
            normalized[spec.name] = value

        return normalized

    def validate(self, config: dict[str, Any]) -> ValidationResult:
        """
        Validate a configuration.

        The configuration is normalized first, so "a" is accepted where "A"
        is expected.

        Args:
            config: Entity configuration

        Returns:
            ValidationResult with valid flag, errors, and warnings
        """
        return self._validate_normalized(self.normalize(config))

    def _validate_normalized(self, normalized: dict[str, str]) -> ValidationResult:
        errors: list[str] = []
        warnings: list[str] = []

        known = set(self.descriptor.field_names)
        for key in normalized:
            if key not in known:
                errors.append(f"Unknown field '{key}' for {self.descriptor.entity_type}")

        for spec in self.descriptor.fields:
            value = normalized.get(spec.name)
            if value is None:
                if spec.required:
                    errors.append(f"Missing required field '{spec.name}'")
                continue
            self._validate_field(spec, value, errors)

        self._validate_record_value(normalized, errors)

        return ValidationResult(
            valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
        )

    def check(self, config: dict[str, Any]) -> dict[str, str]:
        """Validate and return the normalized configuration.

        Raises:
            ConfigValidationError: If the configuration is invalid
        """
        normalized = self.normalize(config)
        result = self._validate_normalized(normalized)
        if not result.valid:
            raise ConfigValidationError(
                result.errors,
                entity_type=self.descriptor.entity_type,
                entity_name=self.descriptor.display_name(normalized),
            )
        return normalized

    def _validate_field(self, spec: FieldSpec, value: str, errors: list[str]) -> None:
        if spec.choices and value.upper() not in spec.choices:
            errors.append(
                f"Unsupported {spec.name} '{value}'. Valid: {', '.join(spec.choices)}"
            )

        if spec.address_family and _address_version(value) != spec.address_family:
            errors.append(f"Field '{spec.name}' must be an IPv{spec.address_family} address, got '{value}'")

        if spec.numeric and not value.isdigit():
            errors.append(f"Field '{spec.name}' must be a non-negative integer, got '{value}'")

    def _validate_record_value(self, config: dict[str, str], errors: list[str]) -> None:
        """Check that A and AAAA records carry an address of the right family."""
        if "value" not in self.descriptor.field_names:
            return

        record_type = config.get("type", "")
        value = config.get("value")
        family = RECORD_VALUE_FAMILY.get(record_type)
        if family is None or value is None:
            return

        if _address_version(value) != family:
            errors.append(
                f"{record_type} record value must be an IPv{family} address, got '{value}'"
            )
