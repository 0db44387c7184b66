from __future__ import annotations

from flask import Flask, request

from ..attendance.device import parse_device_info
from ..attendance.geo import geo_from_payload
from ..common.http import json_body, ok
from ..container import Container
from .decorators import require_auth


def register(app: Flask, container: Container) -> None:
    auth = container.auth_service
    signed_in = require_auth(container.enforcer, ward_scoped=False)

    @app.route("/api/auth/staff/login", methods=["POST"], endpoint="staff_login")
    def staff_login():
        payload = json_body()
        identifier = (
            payload.get("identifier")
            or payload.get("employee_code")
            or payload.get("username")
            or payload.get("email")
            or payload.get("phone_number")
        )
        result = auth.staff_login(
            identifier,
            payload.get("password"),
            device=parse_device_info(request.headers, request.remote_addr),
            geo=geo_from_payload(payload),
        )
        return ok(result.to_dict(), "Login successful")

    @app.route("/api/auth/login", methods=["POST"], endpoint="login")
    def login():
        payload = json_body()
        result = auth.login(
            payload.get("email"),
            payload.get("password"),
            device=parse_device_info(request.headers, request.remote_addr),
            geo=geo_from_payload(payload),
        )
        return ok(result.to_dict(), "Login successful")

    @app.route("/api/auth/logout", methods=["POST"], endpoint="logout")
    @signed_in
    def logout(ctx):
        auth.logout(ctx)
        return ok(None, "Logged out")

    @app.route("/api/auth/me", methods=["GET"], endpoint="me")
    @signed_in
    def me(ctx):
        return ok(auth.me(ctx))

    @app.route("/api/auth/refresh", methods=["POST"], endpoint="refresh_token")
    @signed_in
    def refresh(ctx):
        return ok(auth.refresh(ctx).to_dict(), "Token refreshed")

    @app.route("/api/auth/password", methods=["PUT"], endpoint="change_password")
    @signed_in
    def change_password(ctx):
        payload = json_body()
        auth.change_password(
            ctx,
            current_password=payload.get("current_password"),
            new_password=payload.get("new_password"),
        )
        return ok(None, "Password changed")
