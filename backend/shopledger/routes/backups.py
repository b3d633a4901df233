# Overview: Flask API routes for backups and restore.

from flask import Blueprint, jsonify, request

from ..decorators import json_errors, require_account
from ..services import backup_service

backups_bp = Blueprint("backups", __name__, url_prefix="/api/accounts/<int:account_id>/backups")


@backups_bp.get("")
@require_account
def list_backups_route(account_id: int):
    return jsonify({"backups": [b.to_dict() for b in backup_service.list_backups(account_id)]}), 200


@backups_bp.post("")
@require_account
@json_errors("create backup")
def create_backup_route(account_id: int):
    data = request.get_json(silent=True) or {}
    snapshot = backup_service.create_backup(account_id, description=data.get("description"))
    return jsonify({"backup": snapshot.to_dict()}), 201


@backups_bp.post("/<int:backup_id>/restore")
@require_account
@json_errors("restore backup")
def restore_backup_route(account_id: int, backup_id: int):
    """Destructive: requires {"confirm": true}."""
    data = request.get_json(silent=True) or {}
    if data.get("confirm") is not True:
        return jsonify({"error": "confirm must be true to restore a backup"}), 400
    counts = backup_service.restore_backup(account_id, backup_id)
    return jsonify({"restored": counts}), 200


@backups_bp.delete("/<int:backup_id>")
@require_account
@json_errors("delete backup")
def delete_backup_route(account_id: int, backup_id: int):
    backup_service.delete_backup(account_id, backup_id)
    return jsonify({"status": "deleted"}), 200
