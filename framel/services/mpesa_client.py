# framel/services/mpesa_client.py
"""
Thin Daraja (M-Pesa) client: OAuth token, STK push and STK push query.

Holds credentials and the cached access token only; it knows nothing about
orders. Every failure surfaces as ProviderError.
"""
import base64
import logging
import threading
import time
from datetime import datetime
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

import requests

from framel.config import settings
from framel.errors import ProviderError
from framel.schemas.payment_schemas import StkPushResult, StkQueryResult

logger = logging.getLogger(__name__)

TOKEN_PATH = "/oauth/v1/generate?grant_type=client_credentials"
STK_PUSH_PATH = "/mpesa/stkpush/v1/processrequest"
STK_QUERY_PATH = "/mpesa/stkpushquery/v1/query"

# refresh a little before the provider's expiry
TOKEN_SAFETY_SECONDS = 60


class MpesaClient:
    def __init__(
        self,
        consumer_key: Optional[str] = None,
        consumer_secret: Optional[str] = None,
        shortcode: Optional[str] = None,
        passkey: Optional[str] = None,
        callback_url: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        http: Optional[requests.Session] = None,
    ):
        self.consumer_key = consumer_key or settings.MPESA_CONSUMER_KEY
        self.consumer_secret = consumer_secret or settings.MPESA_CONSUMER_SECRET
        self.shortcode = shortcode or settings.MPESA_SHORTCODE
        self.passkey = passkey or settings.MPESA_PASSKEY
        self.callback_url = callback_url or settings.MPESA_CALLBACK_URL
        self.base_url = base_url or settings.mpesa_base_url
        self.timeout = timeout or settings.MPESA_TIMEOUT_SECONDS
        self.http = http or requests.Session()

        self._token: Optional[str] = None
        self._token_expires_at = 0.0
        self._lock = threading.Lock()

    # -------------------------
    # AUTH
    # -------------------------

    def access_token(self) -> str:
        with self._lock:
            if self._token and time.monotonic() < self._token_expires_at:
                return self._token

            auth = base64.b64encode(
                f"{self.consumer_key}:{self.consumer_secret}".encode()
            ).decode()

            try:
                response = self.http.get(
                    f"{self.base_url}{TOKEN_PATH}",
                    headers={"Authorization": f"Basic {auth}"},
                    timeout=self.timeout,
                )
                response.raise_for_status()
                data = response.json()
            except (requests.RequestException, ValueError) as e:
                logger.error(f"Error generating M-Pesa access token: {e}")
                raise ProviderError() from e

            self._token = data["access_token"]
            expires_in = int(data.get("expires_in", 3599))
            self._token_expires_at = time.monotonic() + max(expires_in - TOKEN_SAFETY_SECONDS, 0)
            return self._token

    def password(self, timestamp: str) -> str:
        raw = f"{self.shortcode}{self.passkey}{timestamp}"
        return base64.b64encode(raw.encode()).decode()

    @staticmethod
    def timestamp() -> str:
        return datetime.now(ZoneInfo(settings.STORE_TIMEZONE)).strftime("%Y%m%d%H%M%S")

    def _post(self, path: str, body: dict) -> dict:
        try:
            response = self.http.post(
                f"{self.base_url}{path}",
                json=body,
                headers={
                    "Authorization": f"Bearer {self.access_token()}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"M-Pesa request to {path} failed: {e}")
            raise ProviderError() from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code >= 400:
            logger.error(
                f"M-Pesa {path} returned {response.status_code}: "
                f"{data.get('errorMessage') or response.text}"
            )
            raise ProviderError()

        return data

    # -------------------------
    # STK PUSH
    # -------------------------

    def stk_push(
        self,
        phone: str,
        amount: int,
        account_reference: str,
        description: str,
    ) -> StkPushResult:
        timestamp = self.timestamp()

        data = self._post(STK_PUSH_PATH, {
            "BusinessShortCode": self.shortcode,
            "Password": self.password(timestamp),
            "Timestamp": timestamp,
            "TransactionType": "CustomerPayBillOnline",
            "Amount": amount,
            "PartyA": phone,
            "PartyB": self.shortcode,
            "PhoneNumber": phone,
            "CallBackURL": self.callback_url,
            "AccountReference": account_reference,
            "TransactionDesc": description,
        })

        if str(data.get("ResponseCode")) != "0":
            logger.error(f"STK push rejected for {account_reference}: {data}")
            raise ProviderError()

        return StkPushResult(
            merchant_request_id=data["MerchantRequestID"],
            checkout_request_id=data["CheckoutRequestID"],
            response_code=str(data["ResponseCode"]),
            response_description=data.get("ResponseDescription", ""),
            customer_message=data.get("CustomerMessage", ""),
        )

    def stk_query(self, checkout_request_id: str) -> StkQueryResult:
        timestamp = self.timestamp()

        data = self._post(STK_QUERY_PATH, {
            "BusinessShortCode": self.shortcode,
            "Password": self.password(timestamp),
            "Timestamp": timestamp,
            "CheckoutRequestID": checkout_request_id,
        })

        return StkQueryResult(
            response_code=_str_or_none(data.get("ResponseCode")),
            response_description=data.get("ResponseDescription"),
            merchant_request_id=data.get("MerchantRequestID"),
            checkout_request_id=data.get("CheckoutRequestID"),
            result_code=_str_or_none(data.get("ResultCode")),
            result_desc=data.get("ResultDesc"),
        )


def _str_or_none(value):
    return None if value is None else str(value)


@lru_cache(maxsize=1)
def get_mpesa_client() -> MpesaClient:
    return MpesaClient()
