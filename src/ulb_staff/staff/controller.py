from __future__ import annotations

from flask import Flask, request

from ..auth.decorators import require_auth
from ..common.http import json_body, ok, query_int
from ..container import Container
from ..core.constants import DEFAULT_PAGE_LIMIT

_PASSWORD_NOTE = "Save this password securely. It will not be shown again."


def register(app: Flask, container: Container) -> None:
    service = container.staff_service
    signed_in = require_auth(container.enforcer, ward_scoped=False)
    ward_scoped = require_auth(container.enforcer)

    @app.route("/api/staff", methods=["GET"], endpoint="list_staff")
    @signed_in
    def list_staff(ctx):
        rows = service.list_staff(
            ctx,
            role=request.args.get("role"),
            status=request.args.get("status"),
            search=request.args.get("search"),
            limit=query_int("limit", DEFAULT_PAGE_LIMIT),
            offset=query_int("offset", 0),
        )
        return ok([r.to_dict() for r in rows])

    @app.route("/api/staff", methods=["POST"], endpoint="create_staff")
    @signed_in
    def create_staff(ctx):
        staff, password = service.create_staff(ctx, json_body())
        data = staff.to_dict()
        data["password"] = password
        data["password_note"] = _PASSWORD_NOTE
        return ok(data, "Employee created successfully", 201)

    @app.route("/api/staff/<int:staff_id>", methods=["GET"], endpoint="get_staff")
    @signed_in
    def get_staff(staff_id: int, ctx):
        return ok(service.get_staff(ctx, staff_id).to_dict())

    @app.route("/api/staff/<int:staff_id>", methods=["PUT"], endpoint="update_staff")
    @signed_in
    def update_staff(staff_id: int, ctx):
        return ok(service.update_staff(ctx, staff_id, json_body()).to_dict(), "Employee updated successfully")

    @app.route("/api/staff/<int:staff_id>/status", methods=["PATCH"], endpoint="set_staff_status")
    @signed_in
    def set_status(staff_id: int, ctx):
        staff = service.set_status(ctx, staff_id, json_body().get("status"))
        return ok(staff.to_dict(), f"Status changed to {staff.status.value}")

    @app.route("/api/staff/<int:staff_id>", methods=["DELETE"], endpoint="delete_staff")
    @signed_in
    def delete_staff(staff_id: int, ctx):
        service.delete_staff(ctx, staff_id)
        return ok(None, "Employee deleted")

    @app.route("/api/staff/<int:staff_id>/reset-password", methods=["POST"], endpoint="reset_staff_password")
    @signed_in
    def reset_password(staff_id: int, ctx):
        staff, password = service.reset_password(ctx, staff_id)
        return ok(
            {"id": staff.id, "employee_code": staff.employee_code, "password": password, "password_note": _PASSWORD_NOTE},
            "Password reset",
        )

    @app.route("/api/wards/<ward_id>/staff", methods=["GET"], endpoint="ward_staff")
    @ward_scoped
    def ward_staff(ward_id, ctx):
        return ok([r.to_dict() for r in service.list_ward_staff(ctx, ward_id)])
