from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date_field
from ..common.http import admin_required
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/exeats/<student_id>", methods=["GET"], endpoint="exeats_for_student")
    @admin_required
    def exeats_for_student(student_id: str):
        return jsonify({"exeats": container.exeat_coverage.list_with_status(student_id)})

    @app.route("/api/exeats/<student_id>/coverage", methods=["GET"], endpoint="exeat_coverage")
    @admin_required
    def coverage(student_id: str):
        on_date = parse_iso_date_field(request.args.get("date", ""), "date")
        covering = container.exeat_coverage.covering(student_id, on_date)
        return jsonify(
            {
                "student_id": student_id,
                "date": on_date.isoformat(),
                "covered": bool(covering),
                "exeat_ids": [e.exeat_id for e in covering],
            }
        )
