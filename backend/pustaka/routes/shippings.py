# Overview: Flask API routes for shipping costs on sales transactions.

from flask import Blueprint, current_app, jsonify, request

from ..services import shipping_service
from ..validation import NotFoundError, ValidationError


shippings_bp = Blueprint("shippings", __name__, url_prefix="/api/sales-transactions")


@shippings_bp.get("/<int:transaction_id>/shippings")
def list_shippings_route(transaction_id: int):
    try:
        shippings, total_cost = shipping_service.list_shippings(transaction_id)
        return jsonify({
            "shippings": [s.to_dict() for s in shippings],
            "total_shipping_cost": total_cost,
        })
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@shippings_bp.post("/<int:transaction_id>/shippings")
def add_shipping_route(transaction_id: int):
    """
    Request body:
    {
        "expedition_id": 1,
        "tracking_no": "JNE123",   // optional
        "total_amount": 25000
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        shipping, new_total = shipping_service.add_shipping(
            transaction_id,
            expedition_id=data.get("expedition_id"),
            tracking_no=data.get("tracking_no"),
            total_amount=data.get("total_amount"),
        )
        return jsonify({
            "message": "Shipping created successfully",
            "shipping": shipping.to_dict(),
            "updated_transaction_total": new_total,
        }), 201
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to add shipping")
        return jsonify({"error": "Internal server error"}), 500


@shippings_bp.put("/<int:transaction_id>/shippings/<int:shipping_id>")
def update_shipping_route(transaction_id: int, shipping_id: int):
    data = request.get_json(silent=True) or {}

    try:
        shipping, new_total = shipping_service.update_shipping(transaction_id, shipping_id, data)
        return jsonify({
            "message": "Shipping updated successfully",
            "shipping": shipping.to_dict(),
            "updated_transaction_total": new_total,
        })
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify(e.to_dict()), 400
    except Exception:
        current_app.logger.exception("Failed to update shipping")
        return jsonify({"error": "Internal server error"}), 500


@shippings_bp.delete("/<int:transaction_id>/shippings/<int:shipping_id>")
def delete_shipping_route(transaction_id: int, shipping_id: int):
    try:
        new_total = shipping_service.delete_shipping(transaction_id, shipping_id)
        return jsonify({
            "message": "Shipping deleted successfully",
            "updated_transaction_total": new_total,
        })
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete shipping")
        return jsonify({"error": "Internal server error"}), 500
