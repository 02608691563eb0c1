# Overview: Flask API routes for sales transactions; parses input and returns JSON responses.

"""
Sales Transaction Routes

Error mapping:
- ValidationError subclasses -> 400 {"error", ...details}
- NotFoundError subclasses   -> 404 {"error"}
- anything else              -> 500 {"error": "Internal server error"} (logged)
"""

from flask import Blueprint, current_app, jsonify, request

from ..pagination import get_page_params, pagination_meta
from ..services import sales_transaction_service
from ..validation import NotFoundError, ValidationError


sales_transactions_bp = Blueprint("sales_transactions", __name__, url_prefix="/api/sales-transactions")


@sales_transactions_bp.get("")
def list_sales_transactions_route():
    """
    List sales transactions.

    Query parameters:
    - search: invoice number or sales associate name
    - status: 0 (booking), 1 (paid-off), 2 (installment)
    - payment_type: T or K
    - page, limit, all=true
    """
    params = get_page_params()
    payment_type = request.args.get("payment_type") or None

    try:
        rows, total = sales_transaction_service.list_sales_transactions(
            search=request.args.get("search"),
            status=request.args.get("status"),
            payment_type=payment_type,
            limit=params.limit,
            offset=params.offset,
        )
        return jsonify({
            "sales_transactions": [t.to_dict(include_children=False) for t in rows],
            "pagination": pagination_meta(params, total),
        })
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to list sales transactions")
        return jsonify({"error": "Internal server error"}), 500


@sales_transactions_bp.post("")
def create_sales_transaction_route():
    """
    Create a sales transaction.

    Request body:
    {
        "sales_associate_id": 1,
        "payment_type": "T" | "K",
        "transaction_date": "2025-01-02",
        "due_date": "2025-02-02",   // required for K
        "expedition_id": 1,         // optional
        "items": [{"book_id": 1, "quantity": 3}]
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        transaction = sales_transaction_service.create_sales_transaction(
            sales_associate_id=data.get("sales_associate_id"),
            payment_type=data.get("payment_type"),
            transaction_date=data.get("transaction_date"),
            due_date=data.get("due_date"),
            expedition_id=data.get("expedition_id"),
            items=data.get("items"),
        )
        return jsonify(transaction.to_dict()), 201
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to create sales transaction")
        return jsonify({"error": "Internal server error"}), 500


@sales_transactions_bp.get("/<int:transaction_id>")
def get_sales_transaction_route(transaction_id: int):
    try:
        transaction = sales_transaction_service.get_sales_transaction(transaction_id)
        return jsonify(transaction.to_dict())
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@sales_transactions_bp.put("/<int:transaction_id>")
def update_sales_transaction_route(transaction_id: int):
    """Partial update; "items" replaces the full item list."""
    data = request.get_json(silent=True) or {}

    try:
        transaction = sales_transaction_service.update_sales_transaction(transaction_id, data)
        return jsonify(transaction.to_dict())
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to update sales transaction")
        return jsonify({"error": "Internal server error"}), 500


@sales_transactions_bp.delete("/<int:transaction_id>")
def delete_sales_transaction_route(transaction_id: int):
    try:
        invoice_no = sales_transaction_service.delete_sales_transaction(transaction_id)
        return jsonify({"message": f"Transaction {invoice_no} deleted successfully"})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete sales transaction")
        return jsonify({"error": "Internal server error"}), 500
