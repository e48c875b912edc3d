# forum/core/policy.py
"""
Declarative access policy.

Every (resource, action) pair that needs more than "is authenticated" is listed
in POLICIES with the relationship the caller must have to the resource.
`authorize` is the single check used by the route handlers.
"""
from forum.core.errors import AuthenticationError, AuthorizationError

ANY_USER = "any_user"              # Any authenticated, active user
OWNER_OR_ADMIN = "owner_or_admin"  # Resource author/owner, or an admin
ADMIN_ONLY = "admin_only"

POLICIES: dict[tuple[str, str], str] = {
    ("post", "create"): ANY_USER,
    ("post", "update"): OWNER_OR_ADMIN,
    ("post", "delete"): OWNER_OR_ADMIN,
    ("post", "view_unpublished"): OWNER_OR_ADMIN,
    ("post", "like"): ANY_USER,
    ("post", "comment"): ANY_USER,
    ("user", "list"): ADMIN_ONLY,
    ("user", "read"): OWNER_OR_ADMIN,
    ("user", "update"): OWNER_OR_ADMIN,
    ("user", "update_role"): ADMIN_ONLY,
    ("user", "update_status"): ADMIN_ONLY,
    ("user", "delete"): ADMIN_ONLY,
    ("user", "posts"): OWNER_OR_ADMIN,
    ("user", "stats"): OWNER_OR_ADMIN,
    ("category", "create"): ADMIN_ONLY,
    ("category", "update"): ADMIN_ONLY,
    ("category", "delete"): ADMIN_ONLY,
    ("logs", "read"): ADMIN_ONLY,
}

MESSAGES: dict[tuple[str, str], str] = {
    ("post", "update"): "You can only edit your own posts",
    ("post", "delete"): "You can only delete your own posts",
    ("user", "update"): "You can only update your own profile",
    ("user", "update_role"): "Only admins can change user roles",
    ("user", "update_status"): "Only admins can change user active status",
}


def is_admin(user) -> bool:
    return user is not None and getattr(user, "role", "user") == "admin"


def is_allowed(user, resource: str, action: str, owner_id: str | None = None) -> bool:
    """Non-raising form of `authorize`."""
    rule = POLICIES.get((resource, action))
    if rule is None:
        raise KeyError(f"No policy for {resource}.{action}")
    if user is None:
        return False
    if rule == ANY_USER:
        return True
    if rule == ADMIN_ONLY:
        return is_admin(user)
    # OWNER_OR_ADMIN
    return is_admin(user) or (owner_id is not None and str(user.id) == str(owner_id))


def authorize(user, resource: str, action: str, owner_id: str | None = None) -> None:
    """
    Raise unless `user` may perform `action` on `resource`.

    Raises:
        AuthenticationError: no user (anonymous caller)
        AuthorizationError: authenticated but the policy is not met
        KeyError: the (resource, action) pair has no policy entry
    """
    rule = POLICIES.get((resource, action))
    if rule is None:
        raise KeyError(f"No policy for {resource}.{action}")
    if user is None:
        raise AuthenticationError("Authentication required")
    if not is_allowed(user, resource, action, owner_id):
        message = MESSAGES.get((resource, action))
        if message is None:
            message = "Access denied. Admin privileges required." if rule == ADMIN_ONLY else "Access denied"
        raise AuthorizationError(message)
