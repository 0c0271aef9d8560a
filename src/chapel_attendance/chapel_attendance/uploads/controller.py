from __future__ import annotations

from flask import Flask, g, jsonify, request

from ..common.http import admin_required, json_body
from ..container import Container
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance/upload", methods=["POST"], endpoint="attendance_upload")
    @admin_required
    def upload():
        file = request.files.get("file")
        if file is None:
            raise ValidationError("Invalid upload: file is required")

        result = container.upload_processor.process_upload(
            service_id=request.form.get("service_id", ""),
            level_id=request.form.get("level_id", ""),
            content=file.read(),
            uploaded_by=g.admin_id,
            filename=file.filename or "manifest.csv",
        )
        return jsonify(result.to_dict()), (200 if result.duplicate else 201)

    @app.route("/api/attendance/preview/<upload_id>", methods=["GET"], endpoint="attendance_preview")
    @admin_required
    def preview(upload_id: str):
        return jsonify(container.upload_processor.preview(upload_id))

    @app.route("/api/attendance/uploads", methods=["GET"], endpoint="attendance_uploads")
    @admin_required
    def uploads():
        return jsonify({"uploads": container.upload_processor.list_uploads(request.args.get("service_id", ""))})

    @app.route("/api/attendance/confirm", methods=["POST"], endpoint="attendance_confirm")
    @admin_required
    def confirm():
        data = json_body()
        result = container.confirmation_service.confirm(data.get("uploadId", ""), g.admin_id)
        return jsonify(result.to_dict())

    @app.route("/api/attendance/cancel", methods=["POST"], endpoint="attendance_cancel")
    @admin_required
    def cancel():
        data = json_body()
        return jsonify(container.confirmation_service.cancel(data.get("uploadId", ""), g.admin_id))
