from __future__ import annotations

from flask import Flask

from ..common.web import api_login_required, current_role, current_worker_id, handle_domain_errors, json_body, ok
from ..core.exceptions import ValidationError
from ..container import Container
from .model import OfflineEvent

MAX_BATCH_SIZE = 500


def parse_batch(data: dict) -> list[OfflineEvent]:
    """A malformed record rejects the whole batch; nothing is persisted."""
    records = data.get("records")
    if not isinstance(records, list) or not records:
        raise ValidationError("records must be a non-empty list")
    if len(records) > MAX_BATCH_SIZE:
        raise ValidationError(f"At most {MAX_BATCH_SIZE} records per batch")

    events = []
    for i, raw in enumerate(records):
        try:
            events.append(OfflineEvent.from_dict(raw))
        except ValidationError as e:
            raise ValidationError(f"records[{i}]: {e}") from e
    return events


def register(app: Flask, container: Container) -> None:
    service = container.reconciliation_service

    @app.route("/api/sync/clock-records", methods=["POST"], endpoint="sync_clock_records")
    @api_login_required
    @handle_domain_errors
    def sync_clock_records():
        events = parse_batch(json_body())
        result = service.reconcile(current_worker_id(), events)
        return ok(
            result.message,
            results={
                "synced": result.synced,
                "duplicates": result.duplicates,
                "errors": result.errors,
            },
        )

    @app.route("/api/sync/status", methods=["GET"], endpoint="sync_status")
    @api_login_required
    @handle_domain_errors
    def sync_status():
        report = service.sync_status(current_worker_id(), role=current_role())
        return ok(
            "OK",
            server_time=report.server_time,
            last_record=report.last_record,
            worksites=report.worksites,
            pending_sync_count=report.pending_count,
        )

    @app.route("/api/sync/worksites", methods=["GET"], endpoint="sync_worksites")
    @api_login_required
    @handle_domain_errors
    def sync_worksites():
        cache = container.worksite_service.offline_cache(current_worker_id(), role=current_role())
        return ok("OK", **cache)
