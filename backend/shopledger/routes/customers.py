# Overview: Flask API routes for customers.

from flask import Blueprint, jsonify, request

from ..decorators import json_errors, require_account
from ..services import customer_service

customers_bp = Blueprint("customers", __name__, url_prefix="/api/accounts/<int:account_id>/customers")


@customers_bp.get("")
@require_account
def list_customers_route(account_id: int):
    customers = customer_service.list_customers(account_id, search=request.args.get("search"))
    return jsonify({"customers": [c.to_dict() for c in customers]}), 200


@customers_bp.post("")
@require_account
@json_errors("create customer")
def create_customer_route(account_id: int):
    customer = customer_service.add_customer(account_id, request.get_json(silent=True) or {})
    return jsonify({"customer": customer.to_dict()}), 201


@customers_bp.get("/<int:customer_id>")
@require_account
def get_customer_route(account_id: int, customer_id: int):
    return jsonify({"customer": customer_service.get_customer(account_id, customer_id).to_dict()}), 200


@customers_bp.patch("/<int:customer_id>")
@require_account
@json_errors("update customer")
def update_customer_route(account_id: int, customer_id: int):
    customer = customer_service.update_customer(account_id, customer_id, request.get_json(silent=True) or {})
    return jsonify({"customer": customer.to_dict()}), 200


@customers_bp.delete("/<int:customer_id>")
@require_account
@json_errors("delete customer")
def delete_customer_route(account_id: int, customer_id: int):
    customer_service.delete_customer(account_id, customer_id)
    return jsonify({"status": "deleted"}), 200
