"""
Role parsing and role managers.

Usage:
    from shrub.core.roles import create_role_manager

    roles = create_role_manager(loader, exclusive=False)
    role_id, checksum = roles.process("Threonine synthase (EC 4.2.3.1)")
    roles.close()
"""

from shrub.core.roles.manager import (
    ExclusiveRoleManager,
    RoleManager,
    SharedRoleManager,
    checkpoint_roles,
    create_role_manager,
)
from shrub.core.roles.parser import (
    ParsedRole,
    format_role,
    normalize_role,
    parse_role,
    role_checksum,
)

__all__ = [
    "ExclusiveRoleManager",
    "ParsedRole",
    "RoleManager",
    "SharedRoleManager",
    "checkpoint_roles",
    "create_role_manager",
    "format_role",
    "normalize_role",
    "parse_role",
    "role_checksum",
]
