"""Reconciliation engine - drives one resource through its lifecycle.

Per resource instance:

    absent  --create-->  present
    present --read---->  present | absent (object gone on the appliance)
    present --update-->  present
    present --delete-->  absent

Every call resolves the identifier chain from the configuration it is
given, builds the request, sends it and interprets the answer. A call
either completes its transition or leaves the state exactly as it was,
except delete, which clears the identifier even when the appliance reports
a failure.
"""
import logging
from typing import Optional

from ..appliance.base import ApplianceClient
from ..errors import (
    NotFoundError,
    ReconcileError,
    RemoteRejectedError,
    UnsupportedOperationError,
)
from ..utils.audit_log import ChangeTracker
from ..utils.logging_config import timed_section
from .diff import DiffEngine
from .entities import EntityDescriptor, get_descriptor
from .interpreter import UNKNOWN_ERROR, ResponseInterpreter
from .parameters import ParameterBuilder
from .resolver import IdentifierResolver
from .schema import (
    OPERATION_CLEAR_POLICY,
    Operation,
    Outcome,
    OutcomeKind,
    ResourceChange,
    ResourcePhase,
    ResourceState,
    should_clear,
)
from .validator import ConfigValidator

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """
    Generic create/read/update/delete engine for all entity types.

    The engine holds no per-resource state; it can reconcile any number of
    distinct resources concurrently over one shared client.

    Usage:
        engine = ReconciliationEngine(client)
        state = ResourceState("dns_rr", {"server": "ns1", "name": "www.example.com", ...})
        await engine.create(state)
    """

    def __init__(self, client: ApplianceClient, audit: Optional[ChangeTracker] = None):
        self.client = client
        self.audit = audit
        self.resolver = IdentifierResolver(client)
        self.builder = ParameterBuilder()
        self.interpreter = ResponseInterpreter()
        self.diff_engine = DiffEngine()

    async def create(self, state: ResourceState) -> Outcome:
        """
        Create the object described by ``state.config``.

        On success the identifier and the normalized configuration are
        stored in ``state``. On failure ``state`` is unchanged.
        """
        descriptor = get_descriptor(state.entity_type)
        if state.present:
            raise ReconcileError(
                f"already created with identifier {state.id}",
                entity_type=descriptor.entity_type,
                entity_name=descriptor.display_name(state.config),
            )

        config = ConfigValidator(descriptor).check(state.config)
        name = descriptor.display_name(config)

        state.phase = ResourcePhase.CREATING
        try:
            async with timed_section(
                "create", appliance_id=self.client.appliance_id,
                entity_type=descriptor.entity_type, name=name,
            ):
                resolved = await self._resolve(descriptor, config, name)
                params = self.builder.build(Operation.CREATE, descriptor, config, resolved)
                outcome = await self._send(descriptor, Operation.CREATE, params, name)
                self._audit(descriptor, Operation.CREATE, outcome.identifier or "", params, outcome)

                if outcome.kind != OutcomeKind.CREATED:
                    raise self._rejected(descriptor, "create", name, outcome)

            logger.info(f"Created {descriptor.label} {name} (oid: {outcome.identifier})")
            state.id = outcome.identifier or ""
            state.config = config
            return outcome
        finally:
            state.settle()

    async def read(self, state: ResourceState) -> Outcome:
        """
        Refresh ``state`` from the appliance.

        FOUND refreshes the configuration. NOT_FOUND clears the identifier
        so the host schedules a re-creation. Transport, decode, ambiguity
        and configuration errors are raised without touching ``state``.
        """
        descriptor = get_descriptor(state.entity_type)
        if not state.present:
            return Outcome.not_found("no identifier")

        config = ConfigValidator(descriptor).normalize(state.config)
        name = descriptor.display_name(config)
        policy = OPERATION_CLEAR_POLICY[Operation.READ]

        state.phase = ResourcePhase.READING
        try:
            async with timed_section(
                "read", appliance_id=self.client.appliance_id,
                entity_type=descriptor.entity_type, oid=state.id,
            ):
                try:
                    resolved = await self._resolve(descriptor, config, name)
                except NotFoundError as e:
                    # The parent object is gone, so is the object itself
                    outcome = Outcome.not_found(e.message)
                else:
                    params = self.builder.build(
                        Operation.READ, descriptor, config, resolved, identifier=state.id
                    )
                    outcome = await self._send(descriptor, Operation.READ, params, name)

            if outcome.kind == OutcomeKind.FOUND:
                state.config = self._refresh(descriptor, config, outcome.fields)
                logger.debug(f"Read {descriptor.label} {name} (oid: {state.id})")
                return outcome

            if should_clear(policy, outcome):
                detail = f" ({outcome.message})" if outcome.message else ""
                logger.info(
                    f"Unable to find {descriptor.label} {name} (oid: {state.id}){detail}, "
                    f"clearing identifier"
                )
                state.id = ""
                return outcome

            raise self._rejected(descriptor, "read", name, outcome)
        finally:
            state.settle()

    async def update(self, state: ResourceState, config: dict[str, str]) -> Outcome:
        """
        Apply a new configuration in place.

        Only mutable fields are sent. Changing a force-new field is refused;
        the host must replace the object instead.
        """
        descriptor = get_descriptor(state.entity_type)
        desired = ConfigValidator(descriptor).check(config)
        name = descriptor.display_name(desired)

        if not state.present:
            raise ReconcileError(
                "cannot update an object that was not created",
                entity_type=descriptor.entity_type, entity_name=name,
            )
        if not descriptor.updatable:
            raise UnsupportedOperationError(
                f"{descriptor.label} does not support in-place update",
                entity_type=descriptor.entity_type, entity_name=name,
            )

        change = self.diff_engine.calculate(descriptor, state, desired)
        if change.replace_fields:
            raise UnsupportedOperationError(
                f"changing {', '.join(change.replace_fields)} requires replacement",
                entity_type=descriptor.entity_type, entity_name=name,
            )

        state.phase = ResourcePhase.UPDATING
        try:
            async with timed_section(
                "update", appliance_id=self.client.appliance_id,
                entity_type=descriptor.entity_type, oid=state.id,
            ):
                resolved = await self._resolve(descriptor, desired, name)
                params = self.builder.build(
                    Operation.UPDATE, descriptor, desired, resolved, identifier=state.id
                )
                outcome = await self._send(descriptor, Operation.UPDATE, params, name)
                self._audit(descriptor, Operation.UPDATE, state.id, params, outcome)

                if outcome.kind != OutcomeKind.UPDATED:
                    raise self._rejected(descriptor, "update", name, outcome)

            logger.info(f"Updated {descriptor.label} {name} (oid: {outcome.identifier})")
            # The appliance may hand back a new identifier
            state.id = outcome.identifier or state.id
            state.config = desired
            return outcome
        finally:
            state.settle()

    async def delete(self, state: ResourceState) -> Outcome:
        """
        Delete the object.

        Deleting an absent resource is a no-op. A rejection by the appliance
        is logged and returned as FAILED but still clears the identifier
        (unless the entity type's delete policy says otherwise): "already
        gone" and "could not delete" are not distinguishable. Transport
        errors are raised and keep the identifier.
        """
        descriptor = get_descriptor(state.entity_type)
        if not state.present:
            return Outcome.deleted()

        name = descriptor.display_name(state.config)

        state.phase = ResourcePhase.DELETING
        try:
            async with timed_section(
                "delete", appliance_id=self.client.appliance_id,
                entity_type=descriptor.entity_type, oid=state.id,
            ):
                params = self.builder.build(
                    Operation.DELETE, descriptor, state.config, {}, identifier=state.id
                )
                outcome = await self._send(descriptor, Operation.DELETE, params, name)
                self._audit(descriptor, Operation.DELETE, state.id, params, outcome)

            if outcome.kind == OutcomeKind.DELETED:
                logger.info(f"Deleted {descriptor.label} {name} (oid: {state.id})")
                state.id = ""
                return outcome

            logger.warning(
                f"Unable to delete {descriptor.label} {name} (oid: {state.id}): {outcome.message}"
            )
            if should_clear(descriptor.delete_policy, outcome):
                state.id = ""
                return outcome

            raise self._rejected(descriptor, "delete", name, outcome)
        finally:
            state.settle()

    def plan(self, state: ResourceState, desired: dict[str, str]) -> ResourceChange:
        """Calculate the change needed to reach ``desired`` (no I/O)."""
        descriptor = get_descriptor(state.entity_type)
        return self.diff_engine.calculate(descriptor, state, desired)

    async def _resolve(
        self, descriptor: EntityDescriptor, config: dict[str, str], name: str
    ) -> dict[str, str]:
        try:
            return await self.resolver.resolve_chain(descriptor, config)
        except ReconcileError as e:
            raise e.with_entity(descriptor.entity_type, name)

    async def _send(
        self,
        descriptor: EntityDescriptor,
        operation: Operation,
        params: dict[str, str],
        name: str,
    ) -> Outcome:
        endpoint = descriptor.endpoint(operation)
        try:
            response = await self.client.request(endpoint.verb, endpoint.path, params)
            return self.interpreter.interpret(
                operation, response.status_code, response.body, endpoint.success_codes
            )
        except ReconcileError as e:
            raise e.with_entity(descriptor.entity_type, name)

    def _refresh(
        self, descriptor: EntityDescriptor, config: dict[str, str], fields: dict[str, str]
    ) -> dict[str, str]:
        """Overlay remote values on the configuration; missing ones are kept."""
        refreshed = dict(config)
        for spec in descriptor.fields:
            if spec.read_key is None:
                continue
            value = fields.get(spec.read_key)
            if value is None:
                continue
            refreshed[spec.name] = value.upper() if spec.uppercase else value
        return refreshed

    def _rejected(
        self, descriptor: EntityDescriptor, verb: str, name: str, outcome: Outcome
    ) -> RemoteRejectedError:
        errmsg = outcome.message if outcome.message not in ("", UNKNOWN_ERROR) else None
        status = f"HTTP {outcome.status_code}" if outcome.status_code is not None else "no status"
        reason = errmsg or f"unknown error ({status})"
        return RemoteRejectedError(
            f"Unable to {verb} {descriptor.label}: {reason}",
            status_code=outcome.status_code,
            errmsg=errmsg,
            entity_type=descriptor.entity_type,
            entity_name=name,
        )

    def _audit(
        self,
        descriptor: EntityDescriptor,
        operation: Operation,
        identifier: str,
        params: dict[str, str],
        outcome: Outcome,
    ) -> None:
        if self.audit is None:
            return
        self.audit.log_change(
            entity_type=descriptor.entity_type,
            operation=operation.value,
            identifier=identifier,
            parameters=params,
            success=outcome.ok,
            error=None if outcome.ok else outcome.message,
        )


class ResourceProvider:
    """
    Host-facing operations for one entity type.

    Thin wrapper translating the host's (identifier, configuration) calls
    into ResourceState transitions on the engine.
    """

    def __init__(self, engine: ReconciliationEngine, entity_type: str):
        self.engine = engine
        self.descriptor = get_descriptor(entity_type)

    @property
    def entity_type(self) -> str:
        return self.descriptor.entity_type

    async def create(self, config: dict[str, str]) -> str:
        """Create the object, return its identifier."""
        state = ResourceState(self.entity_type, dict(config))
        await self.engine.create(state)
        return state.id

    async def read(self, identifier: str, config: dict[str, str]) -> tuple[dict[str, str], bool]:
        """Return the refreshed configuration and whether the object still exists."""
        state = ResourceState(self.entity_type, dict(config), id=identifier)
        await self.engine.read(state)
        return state.config, state.present

    async def update(
        self,
        identifier: str,
        config: dict[str, str],
        prior: Optional[dict[str, str]] = None,
    ) -> str:
        """Update the object in place, return its (possibly new) identifier.

        When ``prior`` is given, a change to a force-new field is refused.
        """
        state = ResourceState(self.entity_type, dict(prior or config), id=identifier)
        await self.engine.update(state, config)
        return state.id

    async def delete(self, identifier: str, config: Optional[dict[str, str]] = None) -> None:
        """Delete the object."""
        state = ResourceState(self.entity_type, dict(config or {}), id=identifier)
        await self.engine.delete(state)
