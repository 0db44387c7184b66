from __future__ import annotations

from flask import Flask, request

from ..auth.decorators import require_auth
from ..common.http import json_body, ok, query_int
from ..container import Container
from ..core.constants import DEFAULT_PAGE_LIMIT


def register(app: Flask, container: Container) -> None:
    service = container.task_service
    ward_scoped = require_auth(container.enforcer)

    @app.route("/api/tasks", methods=["GET"], endpoint="list_tasks")
    @ward_scoped
    def list_tasks(ctx):
        rows = service.list_tasks(
            ctx,
            status=request.args.get("status"),
            worker_id=request.args.get("worker_id"),
            ward_id=request.args.get("ward_id"),
            assigned_date=request.args.get("assigned_date"),
            limit=query_int("limit", DEFAULT_PAGE_LIMIT),
            offset=query_int("offset", 0),
        )
        return ok([t.to_dict() for t in rows])

    @app.route("/api/tasks", methods=["POST"], endpoint="create_task")
    @ward_scoped
    def create_task(ctx):
        task = service.create_task(ctx, json_body())
        return ok(task.to_dict(), "Task created successfully", 201)

    @app.route("/api/tasks/<int:task_id>", methods=["PATCH"], endpoint="update_task")
    @ward_scoped
    def update_task(task_id: int, ctx):
        return ok(service.update_task(ctx, task_id, json_body()).to_dict(), "Task updated successfully")
