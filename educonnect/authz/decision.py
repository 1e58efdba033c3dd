"""Outcomes of an authorization check."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union

from educonnect.errors import EduConnectError, NotOwnerOrNotFound, RoleNotPermitted, SelfActionForbidden

from .resources import ResourceType
from .scoping import UNRESTRICTED, Scope, ScopePredicate, compile_scope


class DenialReason(str, Enum):
    role_not_permitted = "role_not_permitted"
    not_owner_or_not_found = "not_owner_or_not_found"
    self_action_forbidden = "self_action_forbidden"


_DENIAL_ERRORS: dict[DenialReason, type[EduConnectError]] = {
    DenialReason.role_not_permitted: RoleNotPermitted,
    DenialReason.not_owner_or_not_found: NotOwnerOrNotFound,
    DenialReason.self_action_forbidden: SelfActionForbidden,
}


@dataclass(frozen=True)
class Denied:
    reason: DenialReason

    allowed: ClassVar[bool] = False

    def error(self) -> EduConnectError:
        return _DENIAL_ERRORS[self.reason]()

    def raise_for_denial(self) -> None:
        raise self.error()

    def predicate(self) -> ScopePredicate:
        raise self.error()


@dataclass(frozen=True)
class AllowedUnscoped:
    """Platform-wide access; only ever produced by an `all` policy."""

    allowed: ClassVar[bool] = True

    def raise_for_denial(self) -> None:
        return None

    def predicate(self) -> ScopePredicate:
        return UNRESTRICTED


@dataclass(frozen=True)
class AllowedWithScope:
    scope: Scope

    allowed: ClassVar[bool] = True

    def raise_for_denial(self) -> None:
        return None

    def predicate(self) -> ScopePredicate:
        return compile_scope(self.scope)


Decision = Union[Denied, AllowedUnscoped, AllowedWithScope]


def predicate_for(decision: Decision, resource_type: ResourceType) -> ScopePredicate:
    """
    The predicate a data-access call on `resource_type` must apply for this
    decision. Raises the denial's error for a Denied decision.
    """
    predicate = decision.predicate()
    if predicate.resource_type is not None and predicate.resource_type is not resource_type:
        raise ValueError(
            f"decision was made for {predicate.resource_type.value!r}, not {resource_type.value!r}"
        )
    return predicate
