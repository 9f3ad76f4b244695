"""
Integration tests for product and wishlist routes.
"""
import json
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

from django.test import TestCase, override_settings
from django.utils import timezone

from market.infra.models import ProductORM, WishlistORM
from market.test.helpers import login, make_product, make_transaction, make_user


class ProductListTest(TestCase):

    def setUp(self):
        self.seller = make_user(name="Seller")
        self.cheap = make_product(self.seller, price="20000", title="Buku Fisika", condition="fair", category="Buku")
        self.phone = make_product(self.seller, price="900000", title="HP Bekas", condition="good")
        self.sold = make_product(self.seller, price="50000", title="Buku Sold", is_sold=True)
        now = timezone.now()
        ProductORM.objects.filter(id=self.cheap.id).update(created_at=now - timedelta(hours=2))
        ProductORM.objects.filter(id=self.phone.id).update(created_at=now - timedelta(hours=1))

    def get(self, **params):
        response = self.client.get("/api/products", params)
        self.assertEqual(response.status_code, 200)
        return json.loads(response.content)

    def test_lists_unsold_newest_first_with_seller(self):
        data = self.get()
        titles = [p["title"] for p in data["products"]]
        self.assertEqual(titles, ["HP Bekas", "Buku Fisika"])
        self.assertEqual(data["products"][0]["seller"]["name"], self.seller.name)
        self.assertEqual(data["products"][0]["price"], "900000.00")
        self.assertEqual(data["pagination"]["total"], 2)

    def test_filters(self):
        self.assertEqual([p["title"] for p in self.get(maxPrice="100000")["products"]], ["Buku Fisika"])
        self.assertEqual([p["title"] for p in self.get(minPrice="100000")["products"]], ["HP Bekas"])
        self.assertEqual([p["title"] for p in self.get(condition="fair")["products"]], ["Buku Fisika"])
        self.assertEqual([p["title"] for p in self.get(category="Buku")["products"]], ["Buku Fisika"])
        self.assertEqual([p["title"] for p in self.get(search="hp")["products"]], ["HP Bekas"])

    def test_invalid_filter(self):
        response = self.client.get("/api/products", {"condition": "broken"})
        self.assertEqual(response.status_code, 400)

    def test_non_finite_price_bounds(self):
        for bound in ("NaN", "Infinity", "-inf"):
            response = self.client.get("/api/products", {"minPrice": bound})
            self.assertEqual(response.status_code, 400, bound)
            self.assertEqual(json.loads(response.content)["error"]["code"], "VALIDATION_ERROR")

    @override_settings(PRODUCTS_PAGE_SIZE=1)
    def test_pagination(self):
        first = self.get()
        self.assertEqual(len(first["products"]), 1)
        self.assertTrue(first["pagination"]["has_next"])
        second = self.get(page=2)
        self.assertEqual(second["products"][0]["title"], "Buku Fisika")
        self.assertFalse(second["pagination"]["has_next"])


class ProductWriteTest(TestCase):

    def setUp(self):
        self.seller = make_user(name="Seller")
        self.other = make_user(name="Other")
        self.admin = make_user(name="Admin", role="admin")

    def payload(self, **overrides):
        data = {
            "title": "Jaket Almamater",
            "description": "Ukuran L",
            "price": "85000",
            "condition": "like_new",
            "image_url": "https://cdn.example.com/jaket.jpg",
            "category": "Fashion",
        }
        data.update(overrides)
        return data

    def test_create_requires_login(self):
        response = self.client.post("/api/products", data=self.payload(), content_type="application/json")
        self.assertEqual(response.status_code, 401)

    def test_create_product(self):
        login(self.client, self.seller)
        response = self.client.post("/api/products", data=self.payload(), content_type="application/json")
        self.assertEqual(response.status_code, 201)
        product = ProductORM.objects.get()
        self.assertEqual(product.seller_id, self.seller.id)
        self.assertEqual(product.price, Decimal("85000.00"))
        self.assertFalse(product.is_sold)

    def test_create_validation(self):
        login(self.client, self.seller)
        response = self.client.post(
            "/api/products", data=self.payload(price="-1"), content_type="application/json"
        )
        self.assertEqual(response.status_code, 400)
        response = self.client.post(
            "/api/products", data=self.payload(description=""), content_type="application/json"
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("description", json.loads(response.content)["error"]["message"])

    def test_price_must_fit_the_price_column(self):
        login(self.client, self.seller)
        for price in ("1e20", "1e400", "1000000000000"):
            response = self.client.post(
                "/api/products", data=self.payload(price=price), content_type="application/json"
            )
            self.assertEqual(response.status_code, 400, price)
            self.assertEqual(json.loads(response.content)["error"]["code"], "VALIDATION_ERROR")
        self.assertFalse(ProductORM.objects.exists())

        response = self.client.post(
            "/api/products", data=self.payload(price="999999999999.99"), content_type="application/json"
        )
        self.assertEqual(response.status_code, 201)

    def test_update_and_delete_by_owner(self):
        product = make_product(self.seller)
        login(self.client, self.seller)
        response = self.client.patch(
            f"/api/products/{product.id}", data={"price": "99000"}, content_type="application/json"
        )
        self.assertEqual(response.status_code, 200)
        product.refresh_from_db()
        self.assertEqual(product.price, Decimal("99000.00"))

        response = self.client.delete(f"/api/products/{product.id}")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(ProductORM.objects.filter(id=product.id).exists())

    def test_non_owner_cannot_update(self):
        product = make_product(self.seller)
        login(self.client, self.other)
        response = self.client.patch(
            f"/api/products/{product.id}", data={"price": "1"}, content_type="application/json"
        )
        self.assertEqual(response.status_code, 403)

    def test_admin_can_delete(self):
        product = make_product(self.seller)
        login(self.client, self.admin)
        self.assertEqual(self.client.delete(f"/api/products/{product.id}").status_code, 200)

    def test_product_with_transactions_cannot_be_deleted(self):
        product = make_product(self.seller)
        make_transaction(product, self.other)
        login(self.client, self.seller)
        response = self.client.delete(f"/api/products/{product.id}")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(json.loads(response.content)["error"]["code"], "INVALID_STATE")

    def test_get_missing_product(self):
        self.assertEqual(self.client.get(f"/api/products/{uuid4()}").status_code, 404)

    def test_my_products(self):
        make_product(self.seller, title="Mine")
        make_product(self.other, title="Theirs")
        login(self.client, self.seller)
        data = json.loads(self.client.get("/api/my-products").content)
        self.assertEqual([p["title"] for p in data["products"]], ["Mine"])


class MarkSoldTest(TestCase):

    def setUp(self):
        self.seller = make_user()
        self.product = make_product(self.seller)

    def test_owner_marks_sold(self):
        login(self.client, self.seller)
        response = self.client.post(f"/api/products/{self.product.id}/sold")
        self.assertEqual(response.status_code, 200)
        self.product.refresh_from_db()
        self.assertTrue(self.product.is_sold)

    def test_non_owner_forbidden(self):
        login(self.client, make_user())
        response = self.client.post(f"/api/products/{self.product.id}/sold")
        self.assertEqual(response.status_code, 403)
        self.product.refresh_from_db()
        self.assertFalse(self.product.is_sold)

    def test_missing_product(self):
        login(self.client, self.seller)
        self.assertEqual(self.client.post(f"/api/products/{uuid4()}/sold").status_code, 404)

    def test_requires_login(self):
        self.assertEqual(self.client.post(f"/api/products/{self.product.id}/sold").status_code, 401)


class WishlistTest(TestCase):

    def setUp(self):
        self.user = make_user()
        self.product = make_product(make_user(name="Seller"))
        login(self.client, self.user)

    def add(self, product_id):
        return self.client.post("/api/wishlist", data={"productId": product_id}, content_type="application/json")

    def test_add_list_remove(self):
        self.assertEqual(self.add(str(self.product.id)).status_code, 201)

        data = json.loads(self.client.get("/api/wishlist").content)
        self.assertEqual(len(data["wishlist"]), 1)
        self.assertEqual(data["wishlist"][0]["product"]["title"], self.product.title)
        self.assertEqual(data["wishlist"][0]["product"]["seller"]["name"], self.product.seller.name)

        response = self.client.delete(f"/api/wishlist/{self.product.id}")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(WishlistORM.objects.exists())

    def test_duplicate(self):
        self.add(str(self.product.id))
        response = self.add(str(self.product.id))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(json.loads(response.content)["error"]["message"], "Product already in wishlist")

    def test_missing_and_unknown_product(self):
        self.assertEqual(self.add("").status_code, 400)
        self.assertEqual(self.add(str(uuid4())).status_code, 404)
