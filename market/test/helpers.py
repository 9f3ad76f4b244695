"""
Shared builders for tests.
"""
import hashlib
from decimal import Decimal
from itertools import count
from unittest import mock

from django.contrib.auth.hashers import make_password

from market.infra.models import ProductORM, TransactionORM, UserORM

_seq = count(1)

PASSWORD = "secret-pass"


def make_user(name="User", role="user", **fields) -> UserORM:
    n = next(_seq)
    defaults = {
        "name": f"{name} {n}",
        "email": f"user{n}@campus.ac.id",
        "password": make_password(PASSWORD),
        "whatsapp": "081234567890",
        "role": role,
    }
    defaults.update(fields)
    return UserORM.objects.create(**defaults)


def make_product(seller: UserORM, price="150000.00", **fields) -> ProductORM:
    defaults = {
        "title": "Kalkulator Casio",
        "description": "Masih bagus",
        "price": Decimal(price),
        "image_url": "https://cdn.example.com/casio.jpg",
        "condition": "good",
        "category": "Elektronik",
    }
    defaults.update(fields)
    return ProductORM.objects.create(seller=seller, **defaults)


def make_transaction(product: ProductORM, buyer: UserORM, **fields) -> TransactionORM:
    n = next(_seq)
    defaults = {
        "order_id": f"ORDER-{1700000000000 + n}-abc{n:03d}",
        "amount": product.price,
        "status": "pending",
        "gateway": "midtrans",
    }
    defaults.update(fields)
    return TransactionORM.objects.create(product=product, buyer=buyer, seller=product.seller, **defaults)


def login(client, user: UserORM) -> None:
    session = client.session
    session["user_id"] = str(user.id)
    session.save()


def midtrans_payload(order_id, transaction_status, server_key, gross_amount="150000.00", status_code="200", **extra):
    signature = hashlib.sha512(f"{order_id}{status_code}{gross_amount}{server_key}".encode()).hexdigest()
    payload = {
        "order_id": order_id,
        "status_code": status_code,
        "gross_amount": gross_amount,
        "transaction_status": transaction_status,
        "signature_key": signature,
    }
    payload.update(extra)
    return payload


def gateway_response(status_code=200, json_data=None, text=""):
    """Stand-in for ``requests.Response``."""
    response = mock.Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.text = text
    if json_data is None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = json_data
    return response
