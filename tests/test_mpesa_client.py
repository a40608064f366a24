"""Tests for the Daraja client with a mocked HTTP session."""

import base64
from unittest.mock import MagicMock

import pytest
import requests

from framel.errors import ProviderError
from framel.services.mpesa_client import MpesaClient


def _response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body if body is not None else {}
    response.text = str(body)
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(str(status_code))
    return response


@pytest.fixture
def http():
    http = MagicMock()
    http.get.return_value = _response(body={"access_token": "tok-1", "expires_in": "3599"})
    return http


@pytest.fixture
def mpesa_client(http):
    return MpesaClient(
        consumer_key="key",
        consumer_secret="secret",
        shortcode="174379",
        passkey="passkey",
        callback_url="https://framel.test/payments/mpesa/callback",
        base_url="https://sandbox.safaricom.co.ke",
        timeout=5,
        http=http,
    )


ACCEPTED = {
    "MerchantRequestID": "29115-34620561-1",
    "CheckoutRequestID": "ws_CO_191220191020363925",
    "ResponseCode": "0",
    "ResponseDescription": "Success. Request accepted for processing",
    "CustomerMessage": "Success. Request accepted for processing",
}


class TestAccessToken:
    def test_token_is_cached(self, mpesa_client, http):
        assert mpesa_client.access_token() == "tok-1"
        assert mpesa_client.access_token() == "tok-1"
        assert http.get.call_count == 1

        auth = http.get.call_args.kwargs["headers"]["Authorization"]
        assert auth == "Basic " + base64.b64encode(b"key:secret").decode()

    def test_token_failure(self, mpesa_client, http):
        http.get.return_value = _response(status_code=400, body={"errorMessage": "Invalid credentials"})
        with pytest.raises(ProviderError):
            mpesa_client.access_token()


class TestStkPush:
    def test_request_body(self, mpesa_client, http, monkeypatch):
        monkeypatch.setattr(MpesaClient, "timestamp", staticmethod(lambda: "20251113102115"))
        http.post.return_value = _response(body=ACCEPTED)

        result = mpesa_client.stk_push("254712345678", 2500, "FRM-20251113-0001", "Order FRM-20251113-0001")

        url = http.post.call_args.args[0]
        body = http.post.call_args.kwargs["json"]
        assert url == "https://sandbox.safaricom.co.ke/mpesa/stkpush/v1/processrequest"
        assert http.post.call_args.kwargs["headers"]["Authorization"] == "Bearer tok-1"
        assert body == {
            "BusinessShortCode": "174379",
            "Password": base64.b64encode(b"174379passkey20251113102115").decode(),
            "Timestamp": "20251113102115",
            "TransactionType": "CustomerPayBillOnline",
            "Amount": 2500,
            "PartyA": "254712345678",
            "PartyB": "174379",
            "PhoneNumber": "254712345678",
            "CallBackURL": "https://framel.test/payments/mpesa/callback",
            "AccountReference": "FRM-20251113-0001",
            "TransactionDesc": "Order FRM-20251113-0001",
        }
        assert result.checkout_request_id == "ws_CO_191220191020363925"
        assert result.merchant_request_id == "29115-34620561-1"

    def test_rejected_push(self, mpesa_client, http):
        http.post.return_value = _response(body={**ACCEPTED, "ResponseCode": "1"})
        with pytest.raises(ProviderError):
            mpesa_client.stk_push("254712345678", 2500, "FRM-1", "Order")

    def test_http_error(self, mpesa_client, http):
        http.post.return_value = _response(status_code=500, body={"errorMessage": "Bad Request"})
        with pytest.raises(ProviderError):
            mpesa_client.stk_push("254712345678", 2500, "FRM-1", "Order")

    def test_network_error(self, mpesa_client, http):
        http.post.side_effect = requests.ConnectionError("unreachable")
        with pytest.raises(ProviderError):
            mpesa_client.stk_push("254712345678", 2500, "FRM-1", "Order")


class TestStkQuery:
    def test_result_fields(self, mpesa_client, http):
        http.post.return_value = _response(body={
            "ResponseCode": "0",
            "ResponseDescription": "The service request has been accepted successsfully",
            "MerchantRequestID": "29115-34620561-1",
            "CheckoutRequestID": "ws_CO_191220191020363925",
            "ResultCode": "1032",
            "ResultDesc": "Request cancelled by user",
        })

        result = mpesa_client.stk_query("ws_CO_191220191020363925")

        assert http.post.call_args.args[0].endswith("/mpesa/stkpushquery/v1/query")
        assert result.result_code == "1032"
        assert result.result_desc == "Request cancelled by user"
