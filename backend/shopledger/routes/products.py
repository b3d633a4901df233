# Overview: Flask API routes for products; stock edits and soft deletes.

from flask import Blueprint, jsonify, request

from ..decorators import json_errors, require_account
from ..services import inventory_service

products_bp = Blueprint("products", __name__, url_prefix="/api/accounts/<int:account_id>/products")


def _flag(value) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


@products_bp.get("")
@require_account
def list_products_route(account_id: int):
    if _flag(request.args.get("low_stock")):
        products = inventory_service.list_low_stock(account_id)
    else:
        products = inventory_service.list_products(
            account_id,
            include_inactive=_flag(request.args.get("include_inactive")),
            search=request.args.get("search"),
            category=request.args.get("category"),
        )
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@products_bp.post("")
@require_account
@json_errors("create product")
def create_product_route(account_id: int):
    product = inventory_service.add_product(account_id, request.get_json(silent=True) or {})
    return jsonify({"product": product.to_dict()}), 201


@products_bp.get("/<int:product_id>")
@require_account
def get_product_route(account_id: int, product_id: int):
    product = inventory_service.get_product(account_id, product_id, include_inactive=True)
    return jsonify({"product": product.to_dict()}), 200


@products_bp.patch("/<int:product_id>")
@require_account
@json_errors("update product")
def update_product_route(account_id: int, product_id: int):
    product = inventory_service.update_product_details(account_id, product_id, request.get_json(silent=True) or {})
    return jsonify({"product": product.to_dict()}), 200


@products_bp.post("/<int:product_id>/stock")
@require_account
@json_errors("update product stock")
def update_stock_route(account_id: int, product_id: int):
    """Body: {"action": "set"|"add"|"remove", "quantity": int, "cost_price": float?}"""
    data = request.get_json(silent=True) or {}
    if data.get("action") is None or data.get("quantity") is None:
        return jsonify({"error": "action and quantity required"}), 400
    product = inventory_service.update_product_stock(
        account_id,
        product_id,
        data["action"],
        data["quantity"],
        cost_price=data.get("cost_price"),
    )
    return jsonify({"product": product.to_dict()}), 200


@products_bp.delete("/<int:product_id>")
@require_account
@json_errors("delete product")
def delete_product_route(account_id: int, product_id: int):
    product = inventory_service.delete_product(
        account_id, product_id, credit_cash=_flag(request.args.get("credit_cash"))
    )
    return jsonify({"product": product.to_dict()}), 200
