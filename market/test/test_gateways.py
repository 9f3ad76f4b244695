"""
Tests for payment gateway clients.
"""
from decimal import Decimal
from unittest import mock

import requests
from django.test import SimpleTestCase

from market.errors import GatewayError
from market.gateways import FlipClient, MidtransSnapClient, XenditClient
from market.gateways.midtrans import SANDBOX_URL, notification_signature, verify_signature
from market.test.helpers import gateway_response


def make_session(*responses):
    session = mock.Mock(spec=requests.Session)
    session.post.side_effect = list(responses)
    return session


class MidtransClientTest(SimpleTestCase):

    def test_create_transaction(self):
        session = make_session(gateway_response(201, {"token": "tok", "redirect_url": "https://pay/tok"}))
        client = MidtransSnapClient(server_key="SB-key", is_production=False, session=session)

        result = client.create_transaction(
            order_id="ORDER-1-abcdef",
            amount=Decimal("150000.00"),
            item_id="p-1",
            item_name="Kalkulator Scientific Casio FX-991ID Plus Edisi Kedua Lengkap",
            customer={"name": "Budi", "email": "budi@campus.ac.id", "phone": "0812"},
        )

        self.assertEqual(result["token"], "tok")
        self.assertEqual(session.auth, ("SB-key", ""))
        url = session.post.call_args.args[0]
        body = session.post.call_args.kwargs["json"]
        self.assertEqual(url, f"{SANDBOX_URL}/snap/v1/transactions")
        self.assertEqual(body["transaction_details"], {"order_id": "ORDER-1-abcdef", "gross_amount": 150000})
        self.assertEqual(len(body["item_details"][0]["name"]), 50)

    def test_signature(self):
        signature = notification_signature("ORDER-1", "200", "150000.00", "key")
        payload = {
            "order_id": "ORDER-1",
            "status_code": "200",
            "gross_amount": "150000.00",
            "signature_key": signature,
        }
        self.assertTrue(verify_signature(payload, "key"))
        self.assertFalse(verify_signature(payload, "other-key"))
        self.assertFalse(verify_signature({**payload, "gross_amount": "1.00"}, "key"))


class FlipClientTest(SimpleTestCase):

    def test_create_bill_posts_form(self):
        session = make_session(gateway_response(200, {"link_id": 1, "link_url": "flip.id/x"}))
        client = FlipClient(api_key="flip", base_url="https://flip.test/v2/", session=session)

        client.create_bill("Buku", Decimal("20000.00"), redirect_url="https://market/done")

        self.assertEqual(session.post.call_args.args[0], "https://flip.test/v2/pwf/bill")
        data = session.post.call_args.kwargs["data"]
        self.assertEqual(data["amount"], 20000)
        self.assertEqual(data["type"], "SINGLE")
        self.assertEqual(data["redirect_url"], "https://market/done")

    def test_disbursement_sends_idempotency_key(self):
        session = make_session(gateway_response(200, {"id": 9, "status": "PENDING"}))
        client = FlipClient(api_key="flip", base_url="https://flip.test/v2", session=session)

        client.create_disbursement("wd-1", "123", "BCA", Decimal("5000"), remark="Withdrawal wd-1 long remark")

        kwargs = session.post.call_args.kwargs
        self.assertEqual(kwargs["headers"], {"idempotency-key": "wd-1"})
        self.assertEqual(kwargs["data"]["bank_code"], "bca")
        self.assertEqual(len(kwargs["data"]["remark"]), 18)


class XenditClientTest(SimpleTestCase):

    def test_ewallet_channel(self):
        session = make_session(gateway_response(202, {"id": "ewc", "status": "PENDING"}))
        client = XenditClient(api_key="xnd", base_url="https://xendit.test", session=session)

        client.create_ewallet_charge("wd-1", Decimal("10000"), "ovo", "0812")

        kwargs = session.post.call_args.kwargs
        self.assertEqual(kwargs["json"]["channel_code"], "ID_OVO")
        self.assertEqual(kwargs["headers"], {"X-IDEMPOTENCY-KEY": "wd-1"})


class GatewayErrorHandlingTest(SimpleTestCase):

    def client_with(self, *responses, max_retries=2):
        return FlipClient(
            api_key="flip",
            base_url="https://flip.test",
            session=make_session(*responses),
            max_retries=max_retries,
            retry_delay=0.01,
        )

    @mock.patch("market.infra.retry.time.sleep")
    def test_connection_errors_are_retried(self, sleep):
        client = self.client_with(
            requests.ConnectionError("reset"),
            requests.ConnectTimeout("no route"),
            gateway_response(200, {"link_id": 1}),
        )

        self.assertEqual(client.create_bill("Buku", Decimal("1000")), {"link_id": 1})
        self.assertEqual(client.session.post.call_count, 3)
        self.assertEqual(sleep.call_count, 2)

    @mock.patch("market.infra.retry.time.sleep")
    def test_read_timeout_not_retried_without_idempotency_key(self, sleep):
        client = self.client_with(requests.ReadTimeout("slow"), gateway_response(200, {"link_id": 1}))

        with self.assertRaises(GatewayError):
            client.create_bill("Buku", Decimal("1000"))
        self.assertEqual(client.session.post.call_count, 1)
        sleep.assert_not_called()

    @mock.patch("market.infra.retry.time.sleep")
    def test_read_timeout_retried_with_idempotency_key(self, sleep):
        client = self.client_with(requests.ReadTimeout("slow"), gateway_response(200, {"id": 9, "status": "PENDING"}))

        result = client.create_disbursement("wd-1", "123", "BCA", Decimal("5000"))

        self.assertEqual(result["id"], 9)
        self.assertEqual(client.session.post.call_count, 2)
        for call in client.session.post.call_args_list:
            self.assertEqual(call.kwargs["headers"], {"idempotency-key": "wd-1"})

    @mock.patch("market.infra.retry.time.sleep")
    def test_snap_checkout_timeout_not_retried(self, sleep):
        session = make_session(requests.ReadTimeout("slow"), gateway_response(201, {"token": "tok"}))
        client = MidtransSnapClient(server_key="SB-key", is_production=False, session=session, retry_delay=0.01)

        with self.assertRaises(GatewayError):
            client.create_transaction(
                order_id="ORDER-1-abcdef",
                amount=Decimal("1000"),
                item_id="p-1",
                item_name="Buku",
                customer={"name": "Budi", "email": "budi@campus.ac.id", "phone": "0812"},
            )
        self.assertEqual(session.post.call_count, 1)

    @mock.patch("market.infra.retry.time.sleep")
    def test_gives_up_after_max_retries(self, sleep):
        client = self.client_with(requests.ConnectionError("down"), requests.ConnectionError("down"), max_retries=1)

        with self.assertRaises(GatewayError):
            client.create_bill("Buku", Decimal("1000"))
        self.assertEqual(client.session.post.call_count, 2)

    def test_http_errors_are_not_retried(self):
        client = self.client_with(gateway_response(422, {"errors": [{"attribute": "amount", "message": "too low"}]}))

        with self.assertRaises(GatewayError) as ctx:
            client.create_bill("Buku", Decimal("1"))

        self.assertEqual(ctx.exception.status_code, 422)
        self.assertEqual(client.session.post.call_count, 1)
        self.assertIn("too low", ctx.exception.message)

    def test_non_json_response(self):
        client = self.client_with(gateway_response(502, text="<html>Bad Gateway</html>"))

        with self.assertRaises(GatewayError) as ctx:
            client.create_bill("Buku", Decimal("1000"))
        self.assertEqual(ctx.exception.status_code, 502)
        self.assertIn("Bad Gateway", ctx.exception.message)
