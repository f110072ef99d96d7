"""
core/permissions.py
-------------------
Role → navigation capability mapping.

Every visibility decision is made by visible_navigation(); nothing else
compares role strings against menu entries.
"""

from enum import Enum as PyEnum
from typing import Optional


class Role(str, PyEnum):
    owner = "owner"
    admin = "admin"
    manager = "manager"
    employee = "employee"
    superadmin = "superadmin"


class NavigationItem(str, PyEnum):
    dashboard = "dashboard"
    tasks = "tasks"
    timesheet = "timesheet"
    team = "team"
    messages = "messages"
    settings = "settings"
    superadmin = "superadmin"


_WORKSPACE = frozenset(
    {
        NavigationItem.dashboard,
        NavigationItem.tasks,
        NavigationItem.timesheet,
        NavigationItem.messages,
    }
)

_CAPABILITIES: dict[Role, frozenset[NavigationItem]] = {
    Role.owner: _WORKSPACE | {NavigationItem.team, NavigationItem.settings},
    Role.admin: _WORKSPACE | {NavigationItem.team, NavigationItem.settings},
    Role.manager: _WORKSPACE | {NavigationItem.team},
    Role.employee: _WORKSPACE,
    Role.superadmin: frozenset({NavigationItem.superadmin}),
}

# Roles an owner/admin/manager may hand out when adding a member.
ASSIGNABLE_ROLES = frozenset({Role.admin, Role.manager, Role.employee})


def parse_role(value: Optional[str]) -> Role:
    """Unknown or missing roles fall back to employee."""
    try:
        return Role(value)
    except ValueError:
        return Role.employee


def visible_navigation(role: Optional[str]) -> frozenset[NavigationItem]:
    return _CAPABILITIES[parse_role(role)]


def can_manage_team(role: Optional[str]) -> bool:
    return NavigationItem.team in visible_navigation(role)
