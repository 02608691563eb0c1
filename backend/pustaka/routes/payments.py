# Overview: Flask API routes for payments and installments on sales transactions.

from flask import Blueprint, current_app, jsonify, request

from ..services import payment_service
from ..validation import NotFoundError, ValidationError


payments_bp = Blueprint("payments", __name__, url_prefix="/api/sales-transactions")


# =============================================================================
# PAYMENTS
# =============================================================================

@payments_bp.get("/<int:transaction_id>/payments")
def list_payments_route(transaction_id: int):
    try:
        payments, summary = payment_service.list_payments(transaction_id)
        return jsonify({"payments": [p.to_dict() for p in payments], **summary})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@payments_bp.post("/<int:transaction_id>/payments")
def add_payment_route(transaction_id: int):
    """
    Record a payment.

    Request body:
    {
        "payment_date": "2025-01-02",
        "amount": 150000,
        "note": "..."   // optional
    }

    Returns:
        201 {payment, transaction_status, total_paid, remaining_amount}
        400 {error, remaining_amount, requested_amount} when over the balance
    """
    data = request.get_json(silent=True) or {}

    try:
        payment, summary = payment_service.add_payment(
            transaction_id,
            payment_date=data.get("payment_date"),
            amount=data.get("amount"),
            note=data.get("note"),
        )
        return jsonify({"payment": payment.to_dict(), **summary}), 201
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to add payment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.delete("/<int:transaction_id>/payments/<int:payment_id>")
def delete_payment_route(transaction_id: int, payment_id: int):
    try:
        summary = payment_service.delete_payment(transaction_id, payment_id)
        return jsonify({"message": "Payment deleted successfully", **summary})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete payment")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# INSTALLMENTS (credit transactions only)
# =============================================================================

@payments_bp.get("/<int:transaction_id>/installments")
def list_installments_route(transaction_id: int):
    try:
        installments, summary = payment_service.list_installments(transaction_id)
        return jsonify({"installments": [i.to_dict() for i in installments], **summary})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@payments_bp.post("/<int:transaction_id>/installments")
def add_installment_route(transaction_id: int):
    data = request.get_json(silent=True) or {}

    try:
        installment, summary = payment_service.add_installment(
            transaction_id,
            installment_date=data.get("installment_date"),
            amount=data.get("amount"),
            note=data.get("note"),
        )
        return jsonify({"installment": installment.to_dict(), **summary}), 201
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to add installment")
        return jsonify({"error": "Internal server error"}), 500


@payments_bp.delete("/<int:transaction_id>/installments/<int:installment_id>")
def delete_installment_route(transaction_id: int, installment_id: int):
    try:
        summary = payment_service.delete_installment(transaction_id, installment_id)
        return jsonify({"message": "Installment deleted successfully", **summary})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete installment")
        return jsonify({"error": "Internal server error"}), 500
