"""
Pytest fixtures for posfin backend tests.

Provides the Flask app and test client plus a small record snapshot shared
by the service, API and CLI tests.
"""

import pytest
from posfin import create_app


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'REPORT_TIMEZONE': 'UTC',
        'DEFAULT_TIME_RANGE': 'today',
        'DEFAULT_SALE_MODE': 'normal',
        'SHOP_NAME': 'Corner Store',
        'SHOP_ADDRESS': '12 Market Road',
        'SHOP_PHONE': '9876500000',
    })
    yield app

@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()

@pytest.fixture(scope='function')
def runner(app):
    return app.test_cli_runner()

@pytest.fixture
def mixed_order():
    """Declared total 118, one normal and one direct item of 50 each."""
    return {
        "_id": "ord-1",
        "sellerId": "seller-a",
        "createdAt": "2024-03-15T10:00:00",
        "paymentMethod": "cash",
        "totalAmount": 118,
        "discount": 0,
        "items": [
            {"productId": "p-1", "name": "Rice 5kg", "quantity": 1, "sellingPrice": 50, "costPrice": 30},
            {"productId": "p-2", "name": "Loose Sugar", "quantity": 1, "sellingPrice": 50, "costPrice": 40, "isDProduct": True},
        ],
    }

@pytest.fixture
def snapshot_payload(mixed_order):
    """A single-seller snapshot for 2024-03-15 plus one foreign order."""
    return {
        "now": "2024-03-15T14:30:00",
        "seller_id": "seller-a",
        "orders": [
            mixed_order,
            {
                "_id": "ord-2",
                "sellerId": "seller-a",
                "createdAt": "2024-03-15T16:45:00",
                "paymentMethod": "upi",
                "totalAmount": 200,
                "items": [
                    {"productId": "p-3", "name": "Oil 1L", "quantity": 2, "sellingPrice": 100, "costPrice": 70},
                ],
            },
            {
                "_id": "ord-foreign",
                "sellerId": "seller-b",
                "createdAt": "2024-03-15T11:00:00",
                "paymentMethod": "cash",
                "totalAmount": 999,
                "items": [{"productId": "p-9", "name": "Other", "quantity": 1, "sellingPrice": 999}],
            },
        ],
        "refunds": [
            {
                "_id": "ref-1",
                "sellerId": "seller-a",
                "orderId": "ord-1",
                "createdAt": "2024-03-15T12:00:00",
                "items": [{"productId": "p-1", "name": "Rice 5kg", "qty": 1, "rate": 20}],
            },
        ],
        "expenses": [
            {"sellerId": "seller-a", "date": "2024-03-15T09:00:00", "amount": 15, "category": "tea"},
        ],
        "purchase_orders": [
            {"sellerId": "seller-a", "status": "completed", "createdAt": "2024-03-15T08:00:00", "total": 500},
            {"sellerId": "seller-a", "status": "pending", "createdAt": "2024-03-15T08:00:00", "total": 300},
        ],
        "customer_transactions": [
            {"sellerId": "seller-a", "customerId": "c-1", "type": "credit", "amount": 100},
            {"sellerId": "seller-a", "customerId": "c-1", "type": "payment", "amount": 40},
        ],
        "supplier_transactions": [
            {"sellerId": "seller-a", "supplierId": "s-1", "type": "purchase_order", "amount": 500},
            {"sellerId": "seller-a", "supplierId": "s-1", "type": "payment", "amount": 200},
        ],
    }
