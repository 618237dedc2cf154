"""Upload endpoint and ingested-file descriptors."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from middleware.errors import NoFileError
from services.attendee_service import get_file, list_files, purge_file
from services.ingest_service import IngestSettings, ingest_upload

uploads_bp = Blueprint("uploads", __name__, url_prefix="/api")


def _repo():
    return current_app.extensions["attendee_repository"]


@uploads_bp.post("/upload-csv")
async def upload_csv():
    """
    Ingest a webinar report (XLSX or CSV) sent as multipart field ``file``.
    - Size is checked before the sheet is parsed
    - Invalid rows are stored too and listed in ``errors`` (first 50)
    """
    f = request.files.get("file")
    if not f or not f.filename:
        raise NoFileError()

    data = f.read()
    current_app.logger.info("Upload received: %s (%d bytes)", f.filename, len(data))
    payload = await ingest_upload(
        data,
        f.filename,
        repository=_repo(),
        settings=IngestSettings.from_config(current_app.config),
    )
    return jsonify(payload)


@uploads_bp.get("/files")
def files_list():
    return jsonify([descriptor.to_api() for descriptor in list_files(_repo())])


@uploads_bp.get("/files/<file_id>")
def file_detail(file_id: str):
    return jsonify(get_file(_repo(), file_id).to_api())


@uploads_bp.delete("/files/<file_id>")
def file_purge(file_id: str):
    purge_file(_repo(), file_id)
    return jsonify({"message": "تم حذف بيانات الملف بنجاح"})
