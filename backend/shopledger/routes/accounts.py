# Overview: Flask API routes for account provisioning and reset.

from flask import Blueprint, jsonify, request

from ..decorators import json_errors, require_account
from ..services import account_service

accounts_bp = Blueprint("accounts", __name__, url_prefix="/api/accounts")


@accounts_bp.post("")
@json_errors("create account")
def create_account_route():
    data = request.get_json(silent=True) or {}
    account = account_service.create_account(data.get("name"), data.get("code"))
    return jsonify({"account": account.to_dict()}), 201


@accounts_bp.get("")
def list_accounts_route():
    return jsonify({"accounts": [a.to_dict() for a in account_service.list_accounts()]}), 200


@accounts_bp.get("/<int:account_id>")
@require_account
def get_account_route(account_id: int):
    return jsonify({"account": account_service.get_account(account_id).to_dict()}), 200


@accounts_bp.post("/<int:account_id>/reset")
@require_account
@json_errors("reset account")
def reset_account_route(account_id: int):
    """Destructive: requires {"confirm": true}."""
    data = request.get_json(silent=True) or {}
    if data.get("confirm") is not True:
        return jsonify({"error": "confirm must be true to reset account data"}), 400
    account_service.reset_account_data(account_id)
    return jsonify({"status": "reset"}), 200
