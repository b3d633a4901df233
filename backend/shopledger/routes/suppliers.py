# Overview: Flask API routes for suppliers and supplier payments.

from flask import Blueprint, jsonify, request

from ..decorators import json_errors, require_account
from ..services import purchase_service, supplier_service

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/accounts/<int:account_id>/suppliers")


@suppliers_bp.get("")
@require_account
def list_suppliers_route(account_id: int):
    return jsonify({"suppliers": [s.to_dict() for s in supplier_service.list_suppliers(account_id)]}), 200


@suppliers_bp.post("")
@require_account
@json_errors("create supplier")
def create_supplier_route(account_id: int):
    supplier = supplier_service.add_supplier(account_id, request.get_json(silent=True) or {})
    return jsonify({"supplier": supplier.to_dict()}), 201


@suppliers_bp.get("/<int:supplier_id>")
@require_account
def get_supplier_route(account_id: int, supplier_id: int):
    return jsonify({"supplier": supplier_service.get_supplier(account_id, supplier_id).to_dict()}), 200


@suppliers_bp.patch("/<int:supplier_id>")
@require_account
@json_errors("update supplier")
def update_supplier_route(account_id: int, supplier_id: int):
    supplier = supplier_service.update_supplier(account_id, supplier_id, request.get_json(silent=True) or {})
    return jsonify({"supplier": supplier.to_dict()}), 200


@suppliers_bp.delete("/<int:supplier_id>")
@require_account
@json_errors("delete supplier")
def delete_supplier_route(account_id: int, supplier_id: int):
    supplier_service.delete_supplier(account_id, supplier_id)
    return jsonify({"status": "deleted"}), 200


@suppliers_bp.post("/<int:supplier_id>/payments")
@require_account
@json_errors("record supplier payment")
def record_payment_route(account_id: int, supplier_id: int):
    """Body: {"amount": float, "payment_method": str?, "reference": str?, "notes": str?}"""
    data = request.get_json(silent=True) or {}
    if data.get("amount") is None:
        return jsonify({"error": "amount required"}), 400
    supplier = supplier_service.record_supplier_payment(
        account_id,
        supplier_id,
        data["amount"],
        payment_method=data.get("payment_method") or "cash",
        reference=data.get("reference"),
        notes=data.get("notes"),
    )
    return jsonify({"supplier": supplier.to_dict()}), 200


@suppliers_bp.get("/<int:supplier_id>/open-invoices")
@require_account
def open_invoices_route(account_id: int, supplier_id: int):
    supplier_service.get_supplier(account_id, supplier_id)
    invoices = purchase_service.list_open_invoices_for_supplier(account_id, supplier_id)
    return jsonify({"invoices": [i.to_dict(include_lines=False) for i in invoices]}), 200
