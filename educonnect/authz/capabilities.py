"""
Capability Table and YAML loader.

The single source of truth for "may this role do this operation on this
resource type, and under which policy". Loaded once at startup.

Expected shape (simplified):

    capabilities:
      roles:
        platform_admin:
          "*": all                     # every resource, every operation
        school_admin:
          class: same_school           # every operation
          subscription_plan: {read: all}
        teacher:
          assignment: {create: owner, read: owner, update: owner, delete: owner}
      self_action_forbidden:
        - resource: user
          operations: [delete]

Anything not listed is denied (fail closed).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any, Union

import yaml
from pydantic import BaseModel, Field, ValidationError

from .resources import PLATFORM_RESOURCES, Operation, ResourceType, Role
from .scoping import has_owner_path

logger = logging.getLogger(__name__)

WILDCARD = "*"


class Policy(str, Enum):
    denied = "denied"
    same_school = "same_school"
    owner = "owner"
    all = "all"


class CapabilityConfigError(ValueError):
    """Raised when the capability configuration is invalid."""


# ---- File schema ---------------------------------------------------------------------


class SelfActionRule(BaseModel):
    resource: ResourceType
    operations: list[Operation] = Field(default_factory=list)


ResourcePolicies = Union[Policy, dict[Operation, Policy]]


class CapabilityFileModel(BaseModel):
    roles: dict[Role, dict[str, ResourcePolicies]] = Field(default_factory=dict)
    self_action_forbidden: list[SelfActionRule] = Field(default_factory=list)


# ---- Table ---------------------------------------------------------------------------


CapabilityKey = tuple[Role, ResourceType, Operation]


class CapabilityTable:
    """
    Static (role, resource type, operation) -> Policy mapping.

    Usage:
        table = load_capability_table(Path("config/capabilities.yaml"))
        table.lookup(Role.teacher, ResourceType.assignment, Operation.delete)
    """

    def __init__(
        self,
        entries: Mapping[CapabilityKey, Policy],
        self_action_forbidden: frozenset[tuple[ResourceType, Operation]] = frozenset(),
    ) -> None:
        self._entries = dict(entries)
        self._self_action_forbidden = self_action_forbidden

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> CapabilityTable:
        """Build a table from the mapping found under the top-level `capabilities` key."""
        try:
            model = CapabilityFileModel.model_validate(raw)
        except ValidationError as exc:
            raise CapabilityConfigError(f"invalid capability table: {exc}") from exc

        entries: dict[CapabilityKey, Policy] = {}
        for role, resources in model.roles.items():
            for resource_key, policies in resources.items():
                for resource_type in _expand_resource(resource_key):
                    for operation, policy in _expand_operations(policies).items():
                        _validate_entry(role, resource_type, operation, policy)
                        entries[(role, resource_type, operation)] = policy

        self_actions = frozenset(
            (rule.resource, operation) for rule in model.self_action_forbidden for operation in rule.operations
        )
        return cls(entries, self_actions)

    def lookup(self, role: Role, resource_type: ResourceType, operation: Operation) -> Policy:
        return self._entries.get((role, resource_type, operation), Policy.denied)

    def is_self_action_forbidden(self, resource_type: ResourceType, operation: Operation) -> bool:
        return (resource_type, operation) in self._self_action_forbidden

    def policies_for(self, role: Role) -> dict[tuple[ResourceType, Operation], Policy]:
        """Effective non-denied policies of one role (for introspection and tests)."""
        return {
            (resource_type, operation): policy
            for (entry_role, resource_type, operation), policy in self._entries.items()
            if entry_role is role and policy is not Policy.denied
        }


def _expand_resource(resource_key: str) -> list[ResourceType]:
    if resource_key == WILDCARD:
        return list(ResourceType)
    try:
        return [ResourceType(resource_key)]
    except ValueError as exc:
        raise CapabilityConfigError(f"unknown resource type {resource_key!r}") from exc


def _expand_operations(policies: ResourcePolicies) -> dict[Operation, Policy]:
    if isinstance(policies, Policy):
        return {operation: policies for operation in Operation}
    return dict(policies)


def _validate_entry(role: Role, resource_type: ResourceType, operation: Operation, policy: Policy) -> None:
    where = f"{role.value}.{resource_type.value}.{operation.value}"

    if role is Role.platform_admin:
        # Platform admins have no school to scope by.
        if policy not in (Policy.all, Policy.denied):
            raise CapabilityConfigError(f"{where}: platform_admin policies must be 'all' or 'denied'")
        return

    if policy is Policy.all and resource_type not in PLATFORM_RESOURCES:
        raise CapabilityConfigError(f"{where}: 'all' is only allowed on platform-wide resources")
    if policy in (Policy.same_school, Policy.owner) and resource_type in PLATFORM_RESOURCES:
        raise CapabilityConfigError(f"{where}: platform-wide resources have no tenant scope")
    if policy is Policy.owner and not has_owner_path(role, resource_type):
        raise CapabilityConfigError(f"{where}: no ownership path defined for this role and resource")


def load_capability_table(path: Path) -> CapabilityTable:
    raw_text = path.read_text(encoding="utf-8")
    raw: dict[str, Any] = yaml.safe_load(raw_text) or {}

    if "capabilities" not in raw:
        raise CapabilityConfigError(f"Missing top-level 'capabilities' key in config: {path}")

    table = CapabilityTable.from_mapping(raw["capabilities"] or {})
    logger.debug("Loaded capability table from %s", path)
    return table
