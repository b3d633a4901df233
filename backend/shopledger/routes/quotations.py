# Overview: Flask API routes for quotations.

from flask import Blueprint, jsonify, request

from ..decorators import json_errors, require_account
from ..schemas import parse_quotation_input
from ..services import quotation_service

quotations_bp = Blueprint("quotations", __name__, url_prefix="/api/accounts/<int:account_id>/quotations")


@quotations_bp.get("")
@require_account
def list_quotations_route(account_id: int):
    quotations = quotation_service.list_quotations(account_id, status=request.args.get("status"))
    return jsonify({"quotations": [q.to_dict(include_lines=False) for q in quotations]}), 200


@quotations_bp.post("")
@require_account
@json_errors("create quotation")
def create_quotation_route(account_id: int):
    quotation = quotation_service.create_quotation(account_id, parse_quotation_input(request.get_json(silent=True)))
    return jsonify({"quotation": quotation.to_dict()}), 201


@quotations_bp.get("/<int:quotation_id>")
@require_account
def get_quotation_route(account_id: int, quotation_id: int):
    return jsonify({"quotation": quotation_service.get_quotation(account_id, quotation_id).to_dict()}), 200


@quotations_bp.patch("/<int:quotation_id>")
@require_account
@json_errors("update quotation")
def update_quotation_route(account_id: int, quotation_id: int):
    """A body with only "status" changes the status; anything else replaces the quotation."""
    data = request.get_json(silent=True) or {}
    if set(data) == {"status"}:
        quotation = quotation_service.set_quotation_status(account_id, quotation_id, data["status"])
    else:
        quotation = quotation_service.update_quotation(account_id, quotation_id, parse_quotation_input(data))
    return jsonify({"quotation": quotation.to_dict()}), 200


@quotations_bp.post("/expire")
@require_account
@json_errors("expire quotations")
def expire_quotations_route(account_id: int):
    expired = quotation_service.expire_overdue_quotations(account_id)
    return jsonify({"expired": [q.id for q in expired]}), 200
