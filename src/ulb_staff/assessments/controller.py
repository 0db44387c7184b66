from __future__ import annotations

from flask import Flask, request

from ..auth.decorators import require_auth
from ..common.http import json_body, ok, query_int
from ..container import Container
from ..core.constants import DEFAULT_PAGE_LIMIT


def register(app: Flask, container: Container) -> None:
    service = container.assessment_service
    ward_scoped = require_auth(container.enforcer)
    base = "/api/shop-tax-assessments"

    @app.route(base, methods=["GET"], endpoint="list_assessments")
    @ward_scoped
    def list_assessments(ctx):
        rows = service.list(
            ctx,
            shop_id=request.args.get("shop_id"),
            ward_id=request.args.get("ward_id"),
            status=request.args.get("status"),
            assessment_year=request.args.get("assessment_year"),
            limit=query_int("limit", DEFAULT_PAGE_LIMIT),
            offset=query_int("offset", 0),
        )
        return ok([a.to_dict() for a in rows])

    @app.route(base, methods=["POST"], endpoint="create_assessment")
    @ward_scoped
    def create_assessment(ctx):
        created = service.create(ctx, json_body())
        return ok(created.to_dict(), "Shop tax assessment created successfully", 201)

    @app.route(f"{base}/<int:assessment_id>", methods=["GET"], endpoint="get_assessment")
    @ward_scoped
    def get_assessment(assessment_id: int, ctx):
        return ok(service.get(ctx, assessment_id).to_dict())

    @app.route(f"{base}/<int:assessment_id>", methods=["PUT"], endpoint="update_assessment")
    @ward_scoped
    def update_assessment(assessment_id: int, ctx):
        updated = service.update(ctx, assessment_id, json_body())
        return ok(updated.to_dict(), "Shop tax assessment updated successfully")

    @app.route(f"{base}/<int:assessment_id>/submit", methods=["POST"], endpoint="submit_assessment")
    @ward_scoped
    def submit_assessment(assessment_id: int, ctx):
        return ok(service.submit(ctx, assessment_id).to_dict(), "Assessment submitted for approval")

    @app.route(f"{base}/<int:assessment_id>/approve", methods=["POST"], endpoint="approve_assessment")
    @ward_scoped
    def approve_assessment(assessment_id: int, ctx):
        return ok(service.approve(ctx, assessment_id).to_dict(), "Assessment approved successfully")

    @app.route(f"{base}/<int:assessment_id>/reject", methods=["POST"], endpoint="reject_assessment")
    @ward_scoped
    def reject_assessment(assessment_id: int, ctx):
        rejected = service.reject(ctx, assessment_id, json_body().get("remarks"))
        return ok(rejected.to_dict(), "Assessment rejected")
