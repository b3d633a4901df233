# Overview: Flask API routes for customer returns.

from flask import Blueprint, jsonify, request

from ..decorators import json_errors, require_account
from ..schemas import parse_return_input
from ..services import return_service

returns_bp = Blueprint("returns", __name__, url_prefix="/api/accounts/<int:account_id>/returns")


@returns_bp.post("")
@require_account
@json_errors("process return")
def create_return_route(account_id: int):
    return_input = parse_return_input(request.get_json(silent=True))
    doc = return_service.add_return(account_id, return_input)
    return jsonify({"return": doc.to_dict()}), 201


@returns_bp.get("")
@require_account
def list_returns_route(account_id: int):
    returns = return_service.list_returns(
        account_id,
        period=request.args.get("period", "all"),
        sale_id=request.args.get("sale_id", type=int),
    )
    return jsonify({"returns": [r.to_dict(include_lines=False) for r in returns]}), 200


@returns_bp.get("/<int:return_id>")
@require_account
def get_return_route(account_id: int, return_id: int):
    return jsonify({"return": return_service.get_return(account_id, return_id).to_dict()}), 200
