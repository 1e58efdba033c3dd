"""
Authorization Guard.

One data-driven decision function replacing per-endpoint role checks:

    authorize(principal, resource_type, operation, resource_ref?) -> Decision

Algorithm:
1. Look up the policy in the Capability Table. `denied` -> Denied(role_not_permitted)
   with no store access.
2. Self-action rule: a destructive operation aimed at the caller's own user
   row -> Denied(self_action_forbidden). Checked before `all` so it binds
   platform admins too.
3. `all` -> AllowedUnscoped.
4. `same_school` -> AllowedWithScope(SchoolScope).
5. `owner` -> AllowedWithScope(OwnerScope).
For 4 and 5, when a resource_ref is given the referenced row must exist under
the scope's predicate; otherwise Denied(not_owner_or_not_found). Missing rows,
rows of another school and rows owned by someone else are reported alike.
"""

from __future__ import annotations

import logging
from typing import Protocol

from educonnect.identity.principal import Principal

from .capabilities import CapabilityTable, Policy
from .decision import AllowedUnscoped, AllowedWithScope, Decision, Denied, DenialReason, predicate_for
from .resources import Operation, ResourceRef, ResourceType
from .scoping import OwnerScope, SchoolScope, Scope, ScopePredicate, compile_scope

logger = logging.getLogger(__name__)

_MUTATING = frozenset({Operation.create, Operation.update, Operation.delete})


class OwnershipStore(Protocol):
    """What the guard needs from the relational store: one scoped existence check."""

    def exists(self, predicate: ScopePredicate, resource_id: int, *, lock: bool = False) -> bool: ...


class AuthorizationGuard:
    """
    Pure decision function over a static table plus one ownership read.

    Holds no per-request state; construct one per store handle (session).
    """

    def __init__(self, table: CapabilityTable, store: OwnershipStore) -> None:
        self._table = table
        self._store = store

    def authorize(
        self,
        principal: Principal,
        resource_type: ResourceType,
        operation: Operation,
        resource_ref: ResourceRef | None = None,
    ) -> Decision:
        policy = self._table.lookup(principal.role, resource_type, operation)
        if policy is Policy.denied:
            return self._deny(principal, resource_type, operation, DenialReason.role_not_permitted)

        if self._is_self_action(principal, resource_type, operation, resource_ref):
            return self._deny(principal, resource_type, operation, DenialReason.self_action_forbidden)

        if policy is Policy.all:
            logger.debug(
                "Authz: allowed unscoped role=%s resource=%s op=%s",
                principal.role.value,
                resource_type.value,
                operation.value,
            )
            return AllowedUnscoped()

        scope = self._scope_for(policy, principal, resource_type)
        if resource_ref is not None and not self._ref_visible(policy, principal, operation, resource_ref):
            return self._deny(principal, resource_type, operation, DenialReason.not_owner_or_not_found)

        logger.debug(
            "Authz: allowed role=%s resource=%s op=%s policy=%s",
            principal.role.value,
            resource_type.value,
            operation.value,
            policy.value,
        )
        return AllowedWithScope(scope)

    def require(
        self,
        principal: Principal,
        resource_type: ResourceType,
        operation: Operation,
        resource_ref: ResourceRef | None = None,
    ) -> ScopePredicate:
        """`authorize` that raises on denial and returns the predicate to apply."""
        decision = self.authorize(principal, resource_type, operation, resource_ref)
        return predicate_for(decision, resource_type)

    # ---- Helpers --------------------------------------------------------------------

    def _is_self_action(
        self,
        principal: Principal,
        resource_type: ResourceType,
        operation: Operation,
        resource_ref: ResourceRef | None,
    ) -> bool:
        if resource_ref is None or resource_ref.resource_type is not ResourceType.user:
            return False
        if resource_ref.id != principal.id:
            return False
        return self._table.is_self_action_forbidden(resource_type, operation)

    @staticmethod
    def _scope_for(policy: Policy, principal: Principal, resource_type: ResourceType) -> Scope:
        if principal.school_id is None:
            # Only platform admins lack a school, and they only hold `all` policies.
            raise ValueError(f"policy {policy.value!r} requires a school-bound principal")
        if policy is Policy.same_school:
            return SchoolScope(resource_type, principal.school_id)
        return OwnerScope(resource_type, principal)

    def _ref_visible(
        self,
        policy: Policy,
        principal: Principal,
        operation: Operation,
        resource_ref: ResourceRef,
    ) -> bool:
        ref_scope = self._scope_for(policy, principal, resource_ref.resource_type)
        try:
            predicate = compile_scope(ref_scope)
        except LookupError:
            logger.warning(
                "Authz: no scope path for role=%s on %s; denying",
                principal.role.value,
                resource_ref.resource_type.value,
            )
            return False
        return self._store.exists(predicate, resource_ref.id, lock=operation in _MUTATING)

    @staticmethod
    def _deny(
        principal: Principal,
        resource_type: ResourceType,
        operation: Operation,
        reason: DenialReason,
    ) -> Denied:
        logger.info(
            "Authz: denied role=%s resource=%s op=%s reason=%s",
            principal.role.value,
            resource_type.value,
            operation.value,
            reason.value,
        )
        return Denied(reason)
