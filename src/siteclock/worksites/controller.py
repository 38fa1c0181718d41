from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_iso_date
from ..common.web import current_role, handle_domain_errors, json_body, ok, roles_required
from ..core.enums import Role
from ..core.exceptions import ValidationError
from ..container import Container


def _optional_date(data: dict, key: str):
    value = data.get(key)
    return parse_iso_date(value) if value else None


def _worker_id(data: dict) -> int:
    value = data.get("worker_id")
    if isinstance(value, bool):
        raise ValidationError("worker_id must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("worker_id must be an integer") from exc


def register(app: Flask, container: Container) -> None:
    service = container.worksite_service

    @app.route("/api/worksites", methods=["GET"], endpoint="worksites_list")
    @roles_required(Role.ADMIN, Role.SUPERVISOR)
    @handle_domain_errors
    def worksites_list():
        include_inactive = request.args.get("include_inactive", "").lower() in ("1", "true", "yes")
        worksites = service.list_worksites(
            include_inactive=include_inactive,
            city=request.args.get("city") or None,
        )
        return ok("OK", worksites=worksites)

    @app.route("/api/worksites", methods=["POST"], endpoint="worksites_create")
    @roles_required(Role.ADMIN)
    @handle_domain_errors
    def worksites_create():
        data = json_body()
        worksite = service.create(
            current_role=current_role(),
            name=data.get("name"),
            address=data.get("address"),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            radius_meters=data.get("radius_meters"),
            city=data.get("city"),
        )
        return ok("Worksite created", 201, worksite=worksite)

    @app.route("/api/worksites/<int:worksite_id>", methods=["PUT"], endpoint="worksites_update")
    @roles_required(Role.ADMIN)
    @handle_domain_errors
    def worksites_update(worksite_id: int):
        worksite = service.update(current_role=current_role(), worksite_id=worksite_id, changes=json_body())
        return ok("Worksite updated", worksite=worksite)

    @app.route("/api/worksites/<int:worksite_id>/deactivate", methods=["POST"], endpoint="worksites_deactivate")
    @roles_required(Role.ADMIN, Role.SUPERVISOR)
    @handle_domain_errors
    def worksites_deactivate(worksite_id: int):
        service.deactivate(current_role=current_role(), worksite_id=worksite_id)
        return ok("Worksite deactivated")

    @app.route("/api/worksites/<int:worksite_id>/assignments", methods=["GET"], endpoint="worksites_assignments")
    @roles_required(Role.ADMIN, Role.SUPERVISOR)
    @handle_domain_errors
    def worksites_assignments(worksite_id: int):
        return ok("OK", assignments=service.list_assignments(worksite_id))

    @app.route("/api/worksites/<int:worksite_id>/assignments", methods=["POST"], endpoint="worksites_assign")
    @roles_required(Role.ADMIN, Role.SUPERVISOR)
    @handle_domain_errors
    def worksites_assign(worksite_id: int):
        data = json_body()
        assignment_id = service.assign_worker(
            current_role=current_role(),
            worker_id=_worker_id(data),
            worksite_id=worksite_id,
            start_date=_optional_date(data, "start_date"),
            end_date=_optional_date(data, "end_date"),
        )
        return ok("Worker assigned", 201, assignment_id=assignment_id)

    @app.route(
        "/api/worksites/<int:worksite_id>/assignments/<int:worker_id>",
        methods=["DELETE"],
        endpoint="worksites_unassign",
    )
    @roles_required(Role.ADMIN, Role.SUPERVISOR)
    @handle_domain_errors
    def worksites_unassign(worksite_id: int, worker_id: int):
        service.unassign_worker(current_role=current_role(), worker_id=worker_id, worksite_id=worksite_id)
        return ok("Worker unassigned")
