from __future__ import annotations

from datetime import timedelta

from flask import Flask, request

from ..common.datetime_utils import day_bounds, parse_iso_date, parse_iso_datetime
from ..common.validators import require_coordinates
from ..common.web import api_login_required, current_role, current_worker_id, handle_domain_errors, json_body, ok
from ..core.constants import DEFAULT_HISTORY_DAYS
from ..core.exceptions import ValidationError
from ..geo import GeoPoint
from ..timesheets.model import TimesheetSummary, WorkSession
from ..container import Container


def session_json(s: WorkSession) -> dict:
    return {
        "entry_time": s.entry_time,
        "exit_time": s.exit_time,
        "hours": round(s.hours, 2),
        "worksite_id": s.worksite_id,
        "worksite_name": s.worksite_name,
    }


def summary_json(summary: TimesheetSummary) -> dict:
    return {
        "total_hours": round(summary.total_hours, 2),
        "session_count": summary.session_count,
        "sessions": [session_json(s) for s in summary.sessions],
    }


def _position(data: dict) -> GeoPoint:
    lat, lng = require_coordinates(data.get("latitude"), data.get("longitude"))
    return GeoPoint(lat, lng)


def _optional_timestamp(data: dict):
    value = data.get("timestamp")
    return parse_iso_datetime(value) if value is not None else None


def _optional_str(data: dict, key: str):
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value


def _optional_worksite_id(data: dict):
    value = data.get("worksite_id")
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError("worksite_id must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("worksite_id must be an integer") from exc


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.route("/api/clock/in", methods=["POST"], endpoint="clock_in")
    @api_login_required
    @handle_domain_errors
    def clock_in():
        data = json_body()
        result = service.clock_in(
            current_worker_id(),
            _position(data),
            accuracy=data.get("accuracy"),
            worksite_id=_optional_worksite_id(data),
            timestamp=_optional_timestamp(data),
            device_info=_optional_str(data, "device_info"),
            role=current_role(),
        )
        return ok(
            "Clock-in recorded",
            201,
            record=result.record,
            worksite=result.worksite,
            geofence=result.geofence,
            advisory=result.advisory,
        )

    @app.route("/api/clock/out", methods=["POST"], endpoint="clock_out")
    @api_login_required
    @handle_domain_errors
    def clock_out():
        data = json_body()
        result = service.clock_out(
            current_worker_id(),
            _position(data),
            accuracy=data.get("accuracy"),
            notes=_optional_str(data, "notes"),
            timestamp=_optional_timestamp(data),
            device_info=_optional_str(data, "device_info"),
        )
        return ok(
            "Clock-out recorded",
            201,
            record=result.record,
            session=session_json(result.session),
            geofence=result.geofence,
            advisory=result.advisory,
        )

    @app.route("/api/clock/status", methods=["GET"], endpoint="clock_status")
    @api_login_required
    @handle_domain_errors
    def clock_status():
        status = service.status(current_worker_id())
        open_session = None
        if status.open_session:
            open_session = {
                "entry_time": status.open_session.entry_time,
                "worksite_id": status.open_session.worksite_id,
                "worksite_name": status.open_session.worksite_name,
                "elapsed_hours": round(status.open_session.elapsed_hours, 2),
            }
        return ok(
            "OK",
            state=status.state,
            is_clocked_in=status.open_session is not None,
            last_record=status.last_record,
            open_session=open_session,
        )

    @app.route("/api/clock/history", methods=["GET"], endpoint="clock_history")
    @api_login_required
    @handle_domain_errors
    def clock_history():
        # both ends inclusive, whole UTC days
        end_day = parse_iso_date(request.args["end"]) if request.args.get("end") else container.clock().date()
        start_day = (
            parse_iso_date(request.args["start"])
            if request.args.get("start")
            else end_day - timedelta(days=DEFAULT_HISTORY_DAYS)
        )
        start, _ = day_bounds(start_day)
        _, end = day_bounds(end_day)

        history = service.history(current_worker_id(), start=start, end=end)
        return ok("OK", start=history.start, end=history.end, records=history.records, summary=summary_json(history.summary))

    @app.route("/api/clock/today", methods=["GET"], endpoint="clock_today")
    @api_login_required
    @handle_domain_errors
    def clock_today():
        history = service.today(current_worker_id())
        return ok("OK", date=history.start.date(), records=history.records, summary=summary_json(history.summary))
