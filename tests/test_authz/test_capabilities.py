"""Tests for the capability table and its YAML loader."""

from pathlib import Path

import pytest

from educonnect.authz.capabilities import (
    CapabilityConfigError,
    CapabilityTable,
    Policy,
    load_capability_table,
)
from educonnect.authz.resources import Operation, ResourceType, Role


def test_shipped_table_loads(capabilities):
    assert capabilities.lookup(Role.teacher, ResourceType.assignment, Operation.delete) is Policy.owner
    assert capabilities.lookup(Role.school_admin, ResourceType.school_class, Operation.create) is Policy.same_school
    assert capabilities.lookup(Role.parent, ResourceType.attendance, Operation.read) is Policy.owner
    assert capabilities.lookup(Role.school_admin, ResourceType.subscription_plan, Operation.read) is Policy.all


def test_platform_admin_wildcard_covers_every_resource(capabilities):
    for resource_type in ResourceType:
        for operation in Operation:
            assert capabilities.lookup(Role.platform_admin, resource_type, operation) is Policy.all


def test_missing_entries_are_denied(capabilities):
    assert capabilities.lookup(Role.parent, ResourceType.assignment, Operation.delete) is Policy.denied
    assert capabilities.lookup(Role.student, ResourceType.transaction, Operation.read) is Policy.denied
    assert capabilities.lookup(Role.teacher, ResourceType.subscription, Operation.create) is Policy.denied


def test_self_delete_of_user_is_forbidden(capabilities):
    assert capabilities.is_self_action_forbidden(ResourceType.user, Operation.delete)
    assert not capabilities.is_self_action_forbidden(ResourceType.user, Operation.update)


def test_no_tenant_role_gets_all_on_tenant_resources(capabilities):
    for role in (Role.school_admin, Role.teacher, Role.parent, Role.student):
        for (resource_type, _operation), policy in capabilities.policies_for(role).items():
            if policy is Policy.all:
                assert resource_type is ResourceType.subscription_plan


def test_single_policy_expands_to_every_operation():
    table = CapabilityTable.from_mapping({"roles": {"school_admin": {"event": "same_school"}}})
    for operation in Operation:
        assert table.lookup(Role.school_admin, ResourceType.event, operation) is Policy.same_school


@pytest.mark.parametrize(
    "roles, message",
    [
        ({"school_admin": {"student": "all"}}, "only allowed on platform-wide"),
        ({"platform_admin": {"student": "same_school"}}, "platform_admin policies"),
        ({"parent": {"school": {"read": "owner"}}}, "no ownership path"),
        ({"teacher": {"subscription_plan": {"read": "same_school"}}}, "no tenant scope"),
    ],
)
def test_invalid_grants_are_rejected(roles, message):
    with pytest.raises(CapabilityConfigError, match=message):
        CapabilityTable.from_mapping({"roles": roles})


@pytest.mark.parametrize(
    "roles",
    [
        {"janitor": {"student": "same_school"}},
        {"teacher": {"gradebook": "owner"}},
        {"teacher": {"student": {"archive": "owner"}}},
        {"teacher": {"student": "everything"}},
    ],
)
def test_unknown_names_are_rejected(roles):
    with pytest.raises(CapabilityConfigError):
        CapabilityTable.from_mapping({"roles": roles})


def test_loader_requires_top_level_key(tmp_path: Path):
    path = tmp_path / "capabilities.yaml"
    path.write_text("roles: {}\n", encoding="utf-8")
    with pytest.raises(CapabilityConfigError, match="capabilities"):
        load_capability_table(path)


def test_loader_reads_self_action_rules(tmp_path: Path):
    path = tmp_path / "capabilities.yaml"
    path.write_text(
        "capabilities:\n"
        "  roles:\n"
        "    school_admin:\n"
        "      user: same_school\n"
        "  self_action_forbidden:\n"
        "    - resource: user\n"
        "      operations: [delete, update]\n",
        encoding="utf-8",
    )
    table = load_capability_table(path)
    assert table.is_self_action_forbidden(ResourceType.user, Operation.update)
    assert table.lookup(Role.school_admin, ResourceType.user, Operation.read) is Policy.same_school
