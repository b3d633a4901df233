# Overview: Flask API routes for the financial ledger, cash reconciliation and the activity log.

from flask import Blueprint, jsonify, request

from ..decorators import json_errors, require_account
from ..services import activity_service, ledger_service
from ..time_utils import parse_iso_datetime

ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/accounts/<int:account_id>")


@ledger_bp.get("/ledger")
@require_account
def list_ledger_route(account_id: int):
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start and end must be ISO-8601"}), 400
    entries = ledger_service.list_business_transactions(
        account_id,
        start=start,
        end=end,
        transaction_type=request.args.get("type"),
        limit=request.args.get("limit", type=int),
    )
    return jsonify({"transactions": [e.to_dict() for e in entries]}), 200


@ledger_bp.post("/ledger/adjustments")
@require_account
@json_errors("adjust business cash")
def adjust_cash_route(account_id: int):
    """Body: {"amount": float, "adjustment_type": "credit"|"debit", "notes": str?}"""
    data = request.get_json(silent=True) or {}
    balance = ledger_service.adjust_business_cash_balance(
        account_id,
        data.get("amount"),
        data.get("adjustment_type"),
        data.get("notes"),
    )
    return jsonify({"current_business_cash": balance}), 200


@ledger_bp.get("/ledger/reconciliation")
@require_account
def reconcile_route(account_id: int):
    return jsonify({"reconciliation": ledger_service.reconcile_cash(account_id).to_dict()}), 200


@ledger_bp.get("/activity")
@require_account
def list_activity_route(account_id: int):
    limit = min(request.args.get("limit", 100, type=int) or 100, 500)
    entries = activity_service.list_activity(account_id, limit=limit, activity_type=request.args.get("type"))
    return jsonify({"activity": [e.to_dict() for e in entries]}), 200
