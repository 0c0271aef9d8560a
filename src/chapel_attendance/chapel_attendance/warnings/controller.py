from __future__ import annotations

from flask import Flask, g, jsonify, request

from ..common.http import admin_required, json_body
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/warnings/generate", methods=["POST"], endpoint="warnings_generate")
    @admin_required
    def generate():
        data = json_body()
        result = container.warning_generator.generate(
            data.get("week_start", ""),
            data.get("threshold", container.warning_threshold),
            actor_id=g.admin_id,
        )
        return jsonify(result.to_dict())

    @app.route("/api/warnings", methods=["GET"], endpoint="warnings_list")
    @admin_required
    def list_warnings():
        snapshots = container.warning_service.list_for_week(request.args.get("week_start", ""))
        return jsonify({"warnings": [s.to_dict() for s in snapshots]})

    @app.route("/api/warnings/<snapshot_id>/sent", methods=["POST"], endpoint="warnings_mark_sent")
    @admin_required
    def mark_sent(snapshot_id: str):
        snapshot = container.warning_service.mark_sent(snapshot_id, g.admin_id)
        return jsonify(snapshot.to_dict() if snapshot else {"snapshot_id": snapshot_id})
