# Overview: Pytest coverage for the HTTP surface; status codes and JSON bodies.

"""
API Tests

Exercises the blueprints through the Flask test client:
- the cash sale scenario (create, pay off, delete, stock restored)
- the purchase scenario (create, complete, complete again rejected)
- error bodies: 400 with detail keys, 404, unknown routes
"""

from pustaka.extensions import db
from pustaka.models import Book


def _stock(book_id):
    db.session.expire_all()
    return db.session.get(Book, book_id).stock


class TestSalesScenario:
    def test_cash_sale_lifecycle(self, client, db_session, associate, make_book):
        book = make_book(price=50000, stock=10)

        resp = client.post('/api/sales-transactions', json={
            'sales_associate_id': associate.id,
            'payment_type': 'T',
            'transaction_date': '2025-01-02',
            'items': [{'book_id': book.id, 'quantity': 3}],
        })
        assert resp.status_code == 201
        txn = resp.json
        assert txn['total_amount'] == 150000
        assert txn['status'] == 0
        assert txn['invoice_no'].startswith('INV')
        assert txn['items'][0]['subtotal'] == 150000
        assert _stock(book.id) == 7

        resp = client.post(f"/api/sales-transactions/{txn['id']}/payments", json={
            'payment_date': '2025-01-03',
            'amount': 150000,
        })
        assert resp.status_code == 201
        assert resp.json['transaction_status'] == 1
        assert resp.json['remaining_amount'] == 0
        assert resp.json['total_paid'] == 150000
        assert resp.json['payment']['payment_no'].startswith('PMT')

        resp = client.delete(f"/api/sales-transactions/{txn['id']}")
        assert resp.status_code == 200
        assert txn['invoice_no'] in resp.json['message']
        assert _stock(book.id) == 10

        resp = client.get(f"/api/sales-transactions/{txn['id']}")
        assert resp.status_code == 404

    def test_insufficient_stock_body(self, client, db_session, associate, make_book):
        book = make_book(stock=2)

        resp = client.post('/api/sales-transactions', json={
            'sales_associate_id': associate.id,
            'payment_type': 'T',
            'transaction_date': '2025-01-02',
            'items': [{'book_id': book.id, 'quantity': 5}],
        })

        assert resp.status_code == 400
        assert resp.json['available_stock'] == 2
        assert resp.json['requested'] == 5
        assert 'error' in resp.json
        assert _stock(book.id) == 2

    def test_missing_book_is_404(self, client, db_session, associate):
        resp = client.post('/api/sales-transactions', json={
            'sales_associate_id': associate.id,
            'payment_type': 'T',
            'transaction_date': '2025-01-02',
            'items': [{'book_id': 4242, 'quantity': 1}],
        })
        assert resp.status_code == 404
        assert resp.json == {'error': 'Book with ID 4242 not found'}

    def test_missing_associate_is_404(self, client, db_session, make_book):
        book = make_book()
        resp = client.post('/api/sales-transactions', json={
            'sales_associate_id': 4242,
            'payment_type': 'T',
            'transaction_date': '2025-01-02',
            'items': [{'book_id': book.id, 'quantity': 1}],
        })
        assert resp.status_code == 404
        assert resp.json['error'] == 'Sales associate not found'

    def test_validation_error_is_400(self, client, db_session, associate):
        resp = client.post('/api/sales-transactions', json={
            'sales_associate_id': associate.id,
            'payment_type': 'T',
            'transaction_date': '2025-01-02',
            'items': [],
        })
        assert resp.status_code == 400
        assert resp.json == {'error': 'At least one item is required'}

    def test_payment_over_balance(self, client, db_session, associate, make_book):
        book = make_book(price=1000, stock=10)
        created = client.post('/api/sales-transactions', json={
            'sales_associate_id': associate.id,
            'payment_type': 'T',
            'transaction_date': '2025-01-02',
            'items': [{'book_id': book.id, 'quantity': 1}],
        }).json

        resp = client.post(f"/api/sales-transactions/{created['id']}/payments", json={
            'payment_date': '2025-01-03',
            'amount': 1500,
        })

        assert resp.status_code == 400
        assert resp.json['remaining_amount'] == 1000
        assert resp.json['requested_amount'] == 1500

        resp = client.get(f"/api/sales-transactions/{created['id']}/payments")
        assert resp.status_code == 200
        assert resp.json['payments'] == []

    def test_update_and_shipping(self, client, db_session, associate, make_book, expedition):
        book = make_book(price=1000, stock=10)
        created = client.post('/api/sales-transactions', json={
            'sales_associate_id': associate.id,
            'payment_type': 'T',
            'transaction_date': '2025-01-02',
            'items': [{'book_id': book.id, 'quantity': 1}],
        }).json
        base = f"/api/sales-transactions/{created['id']}"

        resp = client.post(f"{base}/shippings", json={'expedition_id': expedition.id, 'total_amount': 700})
        assert resp.status_code == 201
        assert resp.json['updated_transaction_total'] == 1700
        shipping_id = resp.json['shipping']['id']

        resp = client.put(base, json={'items': [{'book_id': book.id, 'quantity': 3}]})
        assert resp.status_code == 200
        assert resp.json['total_amount'] == 3700
        assert _stock(book.id) == 7

        resp = client.put(f"{base}/shippings/{shipping_id}", json={'total_amount': 200})
        assert resp.json['updated_transaction_total'] == 3200

        resp = client.get(f"{base}/shippings")
        assert resp.json['total_shipping_cost'] == 200

        resp = client.delete(f"{base}/shippings/{shipping_id}")
        assert resp.json['updated_transaction_total'] == 3000

        resp = client.put('/api/sales-transactions/9999', json={'payment_type': 'T'})
        assert resp.status_code == 404

    def test_installments_credit_only(self, client, db_session, associate, make_book):
        book = make_book(price=1000, stock=10)
        cash = client.post('/api/sales-transactions', json={
            'sales_associate_id': associate.id,
            'payment_type': 'T',
            'transaction_date': '2025-01-02',
            'items': [{'book_id': book.id, 'quantity': 1}],
        }).json
        credit = client.post('/api/sales-transactions', json={
            'sales_associate_id': associate.id,
            'payment_type': 'K',
            'transaction_date': '2025-01-02',
            'due_date': '2025-02-02',
            'items': [{'book_id': book.id, 'quantity': 2}],
        }).json

        resp = client.post(f"/api/sales-transactions/{cash['id']}/installments", json={
            'installment_date': '2025-01-05', 'amount': 500,
        })
        assert resp.status_code == 400

        resp = client.post(f"/api/sales-transactions/{credit['id']}/installments", json={
            'installment_date': '2025-01-05', 'amount': 500,
        })
        assert resp.status_code == 201
        assert resp.json['transaction_status'] == 2
        installment_id = resp.json['installment']['id']

        resp = client.delete(f"/api/sales-transactions/{credit['id']}/installments/{installment_id}")
        assert resp.status_code == 200
        assert resp.json['transaction_status'] == 0

    def test_list_with_pagination(self, client, db_session, associate, make_book):
        book = make_book(stock=10)
        for _ in range(3):
            client.post('/api/sales-transactions', json={
                'sales_associate_id': associate.id,
                'payment_type': 'T',
                'transaction_date': '2025-01-02',
                'items': [{'book_id': book.id, 'quantity': 1}],
            })

        resp = client.get('/api/sales-transactions?page=2&limit=2')
        assert resp.status_code == 200
        assert len(resp.json['sales_transactions']) == 1
        assert resp.json['pagination'] == {'page': 2, 'limit': 2, 'total': 3, 'total_pages': 2}

        resp = client.get('/api/sales-transactions?all=true')
        assert len(resp.json['sales_transactions']) == 3
        assert 'items' not in resp.json['sales_transactions'][0]


class TestPurchaseScenario:
    def test_complete_twice_rejected(self, client, db_session, supplier, make_book):
        book = make_book(stock=1)

        resp = client.post('/api/purchase-transactions', json={
            'supplier_id': supplier.id,
            'purchase_date': '2025-01-02',
            'items': [{'book_id': book.id, 'quantity': 5, 'price': 1000}],
        })
        assert resp.status_code == 201
        purchase = resp.json
        assert purchase['status'] == 0
        assert purchase['invoice_no'].startswith('PRC')
        assert _stock(book.id) == 1

        resp = client.post(f"/api/purchase-transactions/{purchase['id']}/complete")
        assert resp.status_code == 200
        assert resp.json['status'] == 1
        assert _stock(book.id) == 6

        resp = client.post(f"/api/purchase-transactions/{purchase['id']}/complete")
        assert resp.status_code == 400
        assert resp.json == {'error': 'Only pending transactions can be completed'}
        assert _stock(book.id) == 6

    def test_receipt_cancel_and_list(self, client, db_session, supplier, make_book):
        book = make_book()
        purchase = client.post('/api/purchase-transactions', json={
            'supplier_id': supplier.id,
            'purchase_date': '2025-01-02',
            'items': [{'book_id': book.id, 'quantity': 1, 'price': 10}],
        }).json

        resp = client.put(f"/api/purchase-transactions/{purchase['id']}/receipt", json={
            'receipt_image_url': 'https://files.example/r.jpg',
        })
        assert resp.status_code == 200
        assert resp.json['receipt_image_url'] == 'https://files.example/r.jpg'

        resp = client.post(f"/api/purchase-transactions/{purchase['id']}/cancel")
        assert resp.json['status'] == 2

        resp = client.get('/api/purchase-transactions?status=2')
        assert resp.json['pagination']['total'] == 1

        resp = client.get('/api/purchase-transactions?start_date=not-a-date')
        assert resp.status_code == 400

    def test_unknown_supplier_is_404(self, client, db_session, make_book):
        book = make_book()
        resp = client.post('/api/purchase-transactions', json={
            'supplier_id': 4242,
            'purchase_date': '2025-01-02',
            'items': [{'book_id': book.id, 'quantity': 1, 'price': 10}],
        })
        assert resp.status_code == 404
        assert resp.json == {'error': 'Supplier not found'}


class TestMisc:
    def test_book_stock(self, client, db_session, make_book):
        book = make_book(price=1234, stock=9)
        resp = client.get(f'/api/books/{book.id}/stock')
        assert resp.json == {'book_id': book.id, 'price': 1234, 'stock': 9}

        resp = client.get('/api/books/4242/stock')
        assert resp.status_code == 404

    def test_health(self, client, db_session):
        resp = client.get('/health')
        assert resp.status_code == 200
        assert resp.json['status'] == 'ok'
        assert resp.json['checks']['database']['status'] == 'healthy'

    def test_cors_allowed_origin(self, client, db_session):
        resp = client.get('/health', headers={'Origin': 'http://localhost:5173'})
        assert resp.headers['Access-Control-Allow-Origin'] == 'http://localhost:5173'

        resp = client.get('/health', headers={'Origin': 'http://evil.example'})
        assert 'Access-Control-Allow-Origin' not in resp.headers


class TestInputBounds:
    def test_oversized_quantity_is_400(self, client, db_session, supplier, make_book):
        book = make_book()
        resp = client.post('/api/purchase-transactions', json={
            'supplier_id': supplier.id,
            'purchase_date': '2025-01-02',
            'items': [{'book_id': book.id, 'quantity': 10 ** 19, 'price': 0}],
        })
        assert resp.status_code == 400
        assert resp.json == {'error': 'Quantity cannot exceed 1,000,000'}

    def test_non_string_note_is_400(self, client, db_session, associate, make_book):
        book = make_book(price=1000)
        created = client.post('/api/sales-transactions', json={
            'sales_associate_id': associate.id,
            'payment_type': 'T',
            'transaction_date': '2025-01-02',
            'items': [{'book_id': book.id, 'quantity': 1}],
        }).json

        resp = client.post(f"/api/sales-transactions/{created['id']}/payments", json={
            'payment_date': '2025-01-03', 'amount': 500, 'note': {'x': 1},
        })
        assert resp.status_code == 400
        assert resp.json == {'error': 'note must be a string'}

    def test_bad_status_filter_is_400(self, client, db_session):
        resp = client.get('/api/sales-transactions?status=abc')
        assert resp.status_code == 400
        assert resp.json == {'error': 'status must be an integer'}

        resp = client.get('/api/purchase-transactions?status=abc')
        assert resp.status_code == 400

        resp = client.get('/api/sales-transactions?status=')
        assert resp.status_code == 200
