# Overview: Flask API routes for catalog stock reads.

from flask import Blueprint, jsonify

from ..services import stock_service
from ..validation import NotFoundError


books_bp = Blueprint("books", __name__, url_prefix="/api/books")


@books_bp.get("/<int:book_id>/stock")
def get_book_stock_route(book_id: int):
    try:
        book = stock_service.get_book(book_id)
        return jsonify({"book_id": book.id, "price": book.price, "stock": book.stock})
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
