from __future__ import annotations

from flask import Flask

from ..auth.decorators import require_auth
from ..common.http import ok, query_int
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT


def register(app: Flask, container: Container) -> None:
    signed_in = require_auth(container.enforcer, ward_scoped=False)

    @app.route("/api/attendance/me", methods=["GET"], endpoint="my_attendance")
    @signed_in
    def my_attendance(ctx):
        sessions = container.attendance.list_sessions(ctx.principal, query_int("limit", DEFAULT_HISTORY_LIMIT))
        return ok([s.to_dict() for s in sessions])
