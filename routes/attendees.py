"""JSON API routes for reviewing, editing and exporting attendees."""

from __future__ import annotations

import io

from flask import Blueprint, current_app, jsonify, request, send_file

from middleware.errors import ValidationError
from services.attendee_service import (
    collect_statistics,
    delete_attendee,
    export_valid_attendees,
    get_attendee,
    list_attendees,
    update_attendee,
)
from utils.excel import EXPORT_FILE_NAME, XLSX_MIMETYPE

attendees_bp = Blueprint("attendees", __name__, url_prefix="/api")


def _repo():
    return current_app.extensions["attendee_repository"]


@attendees_bp.get("/attendees")
def attendees_list():
    records = list_attendees(
        _repo(),
        search=request.args.get("search", "").strip() or None,
        status=request.args.get("status"),
    )
    return jsonify([record.to_api() for record in records])


@attendees_bp.get("/attendees/<attendee_id>")
def attendee_detail(attendee_id: str):
    return jsonify(get_attendee(_repo(), attendee_id).to_api())


@attendees_bp.put("/attendees/<attendee_id>")
def attendee_update(attendee_id: str):
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError(details={"body": "expected a JSON object"})
    updated = update_attendee(_repo(), attendee_id, body)
    return jsonify(updated.to_api())


@attendees_bp.delete("/attendees/<attendee_id>")
def attendee_delete(attendee_id: str):
    delete_attendee(_repo(), attendee_id)
    return jsonify({"message": "تم حذف السجل بنجاح"})


@attendees_bp.get("/export-excel")
def export_excel():
    payload = export_valid_attendees(_repo())
    return send_file(
        io.BytesIO(payload),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=EXPORT_FILE_NAME,
    )


@attendees_bp.get("/statistics")
def statistics():
    exclusive = request.args.get("mode", "").lower() == "exclusive"
    return jsonify(collect_statistics(_repo(), exclusive=exclusive))
