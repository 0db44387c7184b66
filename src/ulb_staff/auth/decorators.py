from __future__ import annotations

from functools import wraps

from flask import request

from .enforcer import AccessEnforcer, AnyRole


def require_auth(enforcer: AccessEnforcer, *, ward_scoped: bool = True, roles: tuple[AnyRole, ...] = ()):
    """Authenticate the request and hand the RequestContext to the view as ``ctx``."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            ctx = enforcer.authenticate(request.headers.get("Authorization"), ward_scoped=ward_scoped)
            if roles:
                enforcer.require_roles(ctx, *roles)
            return view(*args, ctx=ctx, **kwargs)

        return wrapper

    return decorator
