"""Guardian helpers for document ownership.

When a document is created through a service (API, admin, command), the
creating user gets object-level permissions on it. We keep this explicit:
the service passes `by`, no signal tries to infer the user.
"""

from guardian.shortcuts import assign_perm

DEFAULT_PERMS = ("view", "change")


def grant_object_perms(user, obj, perms=DEFAULT_PERMS):
    """Assign view/change perms for obj to a user. Anonymous/None is ignored."""
    if user is None or not getattr(user, "is_authenticated", False):
        return
    app_label = obj._meta.app_label
    model_name = obj._meta.model_name
    for p in perms:
        assign_perm(f"{app_label}.{p}_{model_name}", user, obj)
