# Overview: Flask API routes for purchase invoices.

from flask import Blueprint, jsonify, request

from ..decorators import json_errors, require_account
from ..schemas import parse_purchase_input
from ..services import purchase_service

purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/accounts/<int:account_id>/purchases")


@purchases_bp.post("")
@require_account
@json_errors("record purchase")
def create_purchase_route(account_id: int):
    invoice_input = parse_purchase_input(request.get_json(silent=True))
    invoice = purchase_service.add_purchase_invoice(account_id, invoice_input)
    return jsonify({"invoice": invoice.to_dict()}), 201


@purchases_bp.get("")
@require_account
def list_purchases_route(account_id: int):
    invoices = purchase_service.list_purchase_invoices(
        account_id,
        period=request.args.get("period", "all"),
        supplier_id=request.args.get("supplier_id", type=int),
    )
    return jsonify({"invoices": [i.to_dict(include_lines=False) for i in invoices]}), 200


@purchases_bp.get("/<int:invoice_id>")
@require_account
def get_purchase_route(account_id: int, invoice_id: int):
    return jsonify({"invoice": purchase_service.get_purchase_invoice(account_id, invoice_id).to_dict()}), 200


@purchases_bp.put("/<int:invoice_id>")
@require_account
@json_errors("update purchase")
def update_purchase_route(account_id: int, invoice_id: int):
    invoice_input = parse_purchase_input(request.get_json(silent=True), allow_new_products=False)
    invoice = purchase_service.update_purchase_invoice(account_id, invoice_id, invoice_input)
    return jsonify({"invoice": invoice.to_dict()}), 200
