# Overview: Flask API routes for sales; parses input and returns JSON responses.

# backend/shopledger/routes/sales.py
"""
Sales API routes.

POST returns as soon as the atomic phase commits. The customer link, cash
balance and audit trail catch up shortly after (deferred phase).
"""

from flask import Blueprint, jsonify, request

from ..decorators import json_errors, require_account
from ..schemas import parse_sale_input
from ..services import sales_service

sales_bp = Blueprint("sales", __name__, url_prefix="/api/accounts/<int:account_id>/sales")


@sales_bp.post("")
@require_account
@json_errors("process sale")
def create_sale_route(account_id: int):
    sale_input = parse_sale_input(request.get_json(silent=True))
    result = sales_service.process_sale(account_id, sale_input)
    return jsonify({
        "sale": result.sale.to_dict(),
        "updated_products": [
            {"id": p.id, "product_code": p.product_code, "stock": p.stock}
            for p in result.updated_products
        ],
    }), 201


@sales_bp.get("")
@require_account
def list_sales_route(account_id: int):
    limit = request.args.get("limit", type=int)
    sales = sales_service.list_sales(account_id, period=request.args.get("period", "all"), limit=limit)
    return jsonify({"sales": [s.to_dict(include_lines=False) for s in sales]}), 200


@sales_bp.get("/<int:sale_id>")
@require_account
def get_sale_route(account_id: int, sale_id: int):
    return jsonify({"sale": sales_service.get_sale(account_id, sale_id).to_dict()}), 200


@sales_bp.get("/by-number/<int:numeric_sale_id>")
@require_account
def get_sale_by_number_route(account_id: int, numeric_sale_id: int):
    sale = sales_service.get_sale_by_numeric_id(account_id, numeric_sale_id)
    return jsonify({"sale": sale.to_dict()}), 200
