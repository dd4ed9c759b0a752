from .taxonomy import ROLE_ADMIN, ROLE_SUPERADMIN


def resolve_access(roles: list[str]) -> dict:
    """Map a user's role rows to admin flags. A superadmin is also an admin."""
    if ROLE_SUPERADMIN in roles:
        return {"is_admin": True, "is_super_admin": True}
    return {"is_admin": ROLE_ADMIN in roles, "is_super_admin": False}
