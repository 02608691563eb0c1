# Overview: Flask API routes for purchase transactions; parses input and returns JSON responses.

"""
Purchase Transaction Routes

Lifecycle endpoints:
- POST /<id>/complete: PENDING -> COMPLETED (stock received)
- POST /<id>/cancel:   PENDING -> CANCELLED
"""

from flask import Blueprint, current_app, jsonify, request

from ..pagination import get_page_params, pagination_meta
from ..services import purchase_service
from ..validation import NotFoundError, ValidationError


purchase_transactions_bp = Blueprint(
    "purchase_transactions", __name__, url_prefix="/api/purchase-transactions"
)


@purchase_transactions_bp.get("")
def list_purchase_transactions_route():
    """
    Query parameters:
    - search: invoice number or supplier name
    - status: 0 (pending), 1 (completed), 2 (cancelled)
    - supplier_id
    - start_date, end_date: YYYY-MM-DD, inclusive
    - page, limit, all=true
    """
    params = get_page_params()

    try:
        rows, total = purchase_service.list_purchase_transactions(
            search=request.args.get("search"),
            status=request.args.get("status"),
            supplier_id=request.args.get("supplier_id"),
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
            limit=params.limit,
            offset=params.offset,
        )
        return jsonify({
            "purchase_transactions": [p.to_dict() for p in rows],
            "pagination": pagination_meta(params, total),
        })
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to list purchase transactions")
        return jsonify({"error": "Internal server error"}), 500


@purchase_transactions_bp.post("")
def create_purchase_transaction_route():
    """
    Request body:
    {
        "supplier_id": 1,
        "purchase_date": "2025-01-02",
        "note": "...",   // optional
        "items": [{"book_id": 1, "quantity": 5, "price": 1000}]
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        purchase = purchase_service.create_purchase_transaction(
            supplier_id=data.get("supplier_id"),
            purchase_date=data.get("purchase_date"),
            note=data.get("note"),
            items=data.get("items"),
        )
        return jsonify(purchase.to_dict()), 201
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to create purchase transaction")
        return jsonify({"error": "Internal server error"}), 500


@purchase_transactions_bp.get("/<int:purchase_id>")
def get_purchase_transaction_route(purchase_id: int):
    try:
        purchase = purchase_service.get_purchase_transaction(purchase_id)
        return jsonify(purchase.to_dict())
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@purchase_transactions_bp.put("/<int:purchase_id>")
def update_purchase_transaction_route(purchase_id: int):
    data = request.get_json(silent=True) or {}

    try:
        purchase = purchase_service.update_purchase_transaction(purchase_id, data)
        return jsonify(purchase.to_dict())
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to update purchase transaction")
        return jsonify({"error": "Internal server error"}), 500


@purchase_transactions_bp.delete("/<int:purchase_id>")
def delete_purchase_transaction_route(purchase_id: int):
    try:
        invoice_no = purchase_service.delete_purchase_transaction(purchase_id)
        return jsonify({"message": f"Purchase transaction {invoice_no} deleted successfully"})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete purchase transaction")
        return jsonify({"error": "Internal server error"}), 500


@purchase_transactions_bp.post("/<int:purchase_id>/complete")
def complete_purchase_transaction_route(purchase_id: int):
    try:
        purchase = purchase_service.complete_purchase_transaction(purchase_id)
        return jsonify(purchase.to_dict())
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to complete purchase transaction")
        return jsonify({"error": "Internal server error"}), 500


@purchase_transactions_bp.post("/<int:purchase_id>/cancel")
def cancel_purchase_transaction_route(purchase_id: int):
    try:
        purchase = purchase_service.cancel_purchase_transaction(purchase_id)
        return jsonify(purchase.to_dict())
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to cancel purchase transaction")
        return jsonify({"error": "Internal server error"}), 500


@purchase_transactions_bp.put("/<int:purchase_id>/receipt")
def set_receipt_route(purchase_id: int):
    """Request body: {"receipt_image_url": "https://..."}"""
    data = request.get_json(silent=True) or {}

    try:
        purchase = purchase_service.set_receipt_image(purchase_id, data.get("receipt_image_url"))
        return jsonify({
            "message": "Receipt uploaded successfully",
            "receipt_image_url": purchase.receipt_image_url,
        })
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to set purchase receipt")
        return jsonify({"error": "Internal server error"}), 500
