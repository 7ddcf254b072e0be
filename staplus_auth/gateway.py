"""
Policy gateway that wraps persistence writes with authorization checks.
"""

from datetime import datetime
from functools import wraps
from typing import Any, Callable, Dict, Optional

from .errors import AuthorizationError, InvalidPayload
from .guard import OwnershipGuard
from .models import Decision, Entity, EntityId, EntityKind, Operation, Outcome, Principal


class PolicyGateway:
    """
    Hook points the persistence boundary calls before every write.

    Each hook consults the OwnershipGuard and raises the typed
    AuthorizationError on deny, so the caller's transaction rolls back and no
    partial write survives.
    """

    def __init__(self, guard: OwnershipGuard):
        """
        Initialize the policy gateway.

        Args:
            guard: The ownership guard deciding on each write
        """
        self.guard = guard
        self.audit_log = []

    def before_create(self, entity: Entity, principal: Optional[Principal]) -> bool:
        """
        Authorize an insert.

        Returns:
            False if the entity already exists and the insert must be skipped
        """
        decision = self._enforce("before_create", Operation.CREATE, entity.KIND, entity, principal)
        return decision.outcome is not Outcome.ALREADY_EXISTS

    def before_update(self, entity: Entity, entity_id: EntityId, principal: Optional[Principal]):
        """
        Authorize an update of the stored entity ``entity_id`` with the given payload.

        ``entity_id`` decides which stored entity is checked; a payload
        carrying a different id is rejected.
        """
        if entity.id is not None and str(entity.id) != str(entity_id):
            error = InvalidPayload(f"{entity.KIND.value} id {entity.id} does not match the updated entity {entity_id}")
            self._record("before_update", entity.KIND, entity_id, principal, Decision.deny(error))
            return
        entity.id = entity_id
        self._enforce("before_update", Operation.UPDATE, entity.KIND, entity, principal)

    def before_delete(self, kind: EntityKind, entity_id: EntityId, principal: Optional[Principal]):
        self._enforce("before_delete", Operation.DELETE, kind, entity_id, principal)

    def guarded_write(self, operation: Operation, kind: Optional[EntityKind] = None):
        """
        Decorator that wraps a persistence write with authorization.

        The wrapped function is called as ``func(principal, entity_or_id,
        **kwargs)`` and receives ``entity_or_id`` and ``kwargs`` once the
        write is authorized. A create of an entity that already exists
        returns None without calling it.

        Args:
            operation: The write the function performs
            kind: Entity kind, required for Delete where only an id is passed

        Example:
            @gateway.guarded_write(Operation.DELETE, kind=EntityKind.DATASTREAM)
            def delete_datastream(entity_id):
                store.delete(EntityKind.DATASTREAM, entity_id)

            delete_datastream(principal, "ds-1")
        """
        if operation is Operation.DELETE and kind is None:
            raise ValueError("guarded_write needs a kind for Delete")

        def decorator(write_func: Callable):
            @wraps(write_func)
            def wrapper(
                principal: Optional[Principal],
                entity_or_id: Any,
                **kwargs
            ) -> Any:
                if operation is Operation.CREATE:
                    if not self.before_create(entity_or_id, principal):
                        return None
                elif operation is Operation.UPDATE:
                    self.before_update(entity_or_id, entity_or_id.id, principal)
                else:
                    self.before_delete(kind, entity_or_id, principal)

                return write_func(entity_or_id, **kwargs)

            return wrapper
        return decorator

    def _enforce(
        self,
        hook: str,
        operation: Operation,
        kind: EntityKind,
        entity_or_id: Any,
        principal: Optional[Principal]
    ) -> Decision:
        decision = self.guard.authorize(operation, kind, entity_or_id, principal)
        return self._record(hook, kind, entity_or_id, principal, decision)

    def _record(
        self,
        hook: str,
        kind: EntityKind,
        entity_or_id: Any,
        principal: Optional[Principal],
        decision: Decision
    ) -> Decision:
        # Audit logging (always, regardless of outcome)
        entity_id = getattr(entity_or_id, "id", entity_or_id)
        audit_entry: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat(),
            "hook": hook,
            "principal_id": principal.identifier if principal is not None else None,
            "entity_kind": kind.value,
            "entity_id": str(entity_id) if entity_id is not None else None,
            "outcome": decision.outcome.value,
            "reason": decision.reason,
        }
        self.audit_log.append(audit_entry)

        if decision.outcome is Outcome.DENY:
            decision.error.audit_entry = audit_entry
            raise decision.error

        return decision


__all__ = ["PolicyGateway", "AuthorizationError"]
