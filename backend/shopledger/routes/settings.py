# Overview: Flask API routes for account settings and backup configuration.

from flask import Blueprint, jsonify, request

from ..decorators import json_errors, require_account
from ..services import settings_service
from ..time_utils import parse_iso_datetime

settings_bp = Blueprint("settings", __name__, url_prefix="/api/accounts/<int:account_id>/settings")


@settings_bp.get("")
@require_account
def get_settings_route(account_id: int):
    return jsonify({"settings": settings_service.get_settings(account_id).to_dict()}), 200


@settings_bp.patch("")
@require_account
@json_errors("update settings")
def update_settings_route(account_id: int):
    """
    Body: {"changes": {...}, "current": {...}}

    "current" is the settings snapshot the client last loaded; fields the
    client did not change are carried forward from it. A bare object is
    treated as the changes with the stored row as the snapshot.
    """
    data = request.get_json(silent=True) or {}
    if "changes" in data:
        changes = data.get("changes") or {}
        current = data.get("current")
    else:
        changes, current = data, None
    settings = settings_service.update_settings(account_id, current, changes)
    return jsonify({"settings": settings.to_dict()}), 200


@settings_bp.put("/backup-config")
@require_account
@json_errors("update backup configuration")
def update_backup_config_route(account_id: int):
    data = request.get_json(silent=True) or {}
    try:
        last_manual = parse_iso_datetime(data.get("last_manual_backup_at"))
        last_auto = parse_iso_datetime(data.get("last_auto_backup_at"))
    except ValueError:
        return jsonify({"error": "Backup timestamps must be ISO-8601"}), 400
    settings = settings_service.update_backup_config(
        account_id,
        auto_backup_frequency=data.get("auto_backup_frequency"),
        last_manual_backup_at=last_manual,
        last_auto_backup_at=last_auto,
    )
    return jsonify({"backup_config": settings.backup_config()}), 200
