import logging
import time
from typing import List, Optional

import httpx

from .conf import SenditConfig, get_sendit_config
from .exceptions import AuthenticationError, SenditAPIError, TransportError

logger = logging.getLogger(__name__)

MAX_DISTRICT_PAGES = 100


def _as_int(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _records(data) -> list:
    """Courier lists come as a list, a paginator dict or a dict keyed "0", "1"..."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        if isinstance(data.get("data"), list):
            return data["data"]
        return [v for k, v in data.items() if str(k).isdigit()]
    return []


class SenditClient:
    """
    Thin client for the Sendit courier API.

    Owns its auth token (cached for ``token_ttl`` seconds) and retries
    transport failures with exponential backoff. Business failures are
    raised as ``SenditAPIError`` and never retried here.
    """

    def __init__(self, config: SenditConfig = None, http: httpx.Client = None, clock=time.monotonic, sleep=time.sleep):
        self.config = config or get_sendit_config()
        self.http = http or httpx.Client(
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            headers={"Accept": "application/json"},
        )
        self._clock = clock
        self._sleep = sleep
        self._token = None
        self._token_expiry = 0.0

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        self.http.close()

    # -- auth -------------------------------------------------------------

    def login(self) -> str:
        response = self._send(
            "POST",
            "login",
            json={"public_key": self.config.public_key, "secret_key": self.config.secret_key},
        )
        if response.is_error:
            raise AuthenticationError(
                f"Authentication failed: {response.status_code}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError:
            raise AuthenticationError(
                "Sendit login returned a non-JSON body",
                status_code=response.status_code,
                data={"message": response.text[:200]},
            )
        if not isinstance(data, dict):
            raise AuthenticationError("Invalid login response from Sendit", data={"data": data})

        payload = data.get("data") if data.get("success") else None
        token = payload.get("token") if isinstance(payload, dict) else None
        if not token:
            raise AuthenticationError("Invalid login response from Sendit", data=data)

        self._token = token
        self._token_expiry = self._clock() + self.config.token_ttl
        logger.info("Sendit token refreshed (valid %ss)", self.config.token_ttl)
        return token

    def token(self) -> str:
        if self._token and self._clock() < self._token_expiry:
            return self._token
        return self.login()

    def invalidate_token(self):
        self._token = None
        self._token_expiry = 0.0

    # -- transport --------------------------------------------------------

    def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        retries = self.config.max_retries
        for attempt in range(retries + 1):
            try:
                response = self.http.request(method, path, **kwargs)
            except httpx.TransportError as exc:
                reason = repr(exc)
            else:
                if response.status_code < 500:
                    return response
                reason = f"HTTP {response.status_code}"

            if attempt < retries:
                delay = self.config.retry_backoff * (2 ** attempt)
                logger.warning(
                    "Sendit %s %s failed (%s), retry %s/%s in %.1fs",
                    method, path, reason, attempt + 1, retries, delay,
                )
                self._sleep(delay)

        raise TransportError(f"Sendit {method} {path} failed after {retries + 1} attempts: {reason}")

    def request(self, method: str, path: str, **kwargs) -> dict:
        """Authenticated call returning the decoded envelope."""
        headers = {"Authorization": f"Bearer {self.token()}"}
        response = self._send(method, path, headers=headers, **kwargs)

        if response.status_code == 401:
            # token revoked before its expiry: log in again once
            self.invalidate_token()
            headers = {"Authorization": f"Bearer {self.token()}"}
            response = self._send(method, path, headers=headers, **kwargs)

        logger.debug("Sendit %s %s -> %s", method, path, response.status_code)

        try:
            data = response.json()
        except ValueError:
            data = {"message": response.text or f"API request failed: {response.status_code}"}
        if not isinstance(data, dict):
            data = {"data": data}

        if response.is_error or data.get("success") is False:
            code = _as_int(data.get("code")) or _as_int(data.get("status")) or response.status_code
            message = data.get("message") or f"API request failed: {response.status_code}"
            logger.error(
                "Sendit error on %s %s: status=%s code=%s message=%s errors=%s",
                method, path, response.status_code, code, message, data.get("errors") or data.get("data"),
            )
            raise SenditAPIError(message, code=code, status_code=response.status_code, data=data)

        return data

    # -- endpoints --------------------------------------------------------

    def list_districts(self, querystring: str = "") -> List[dict]:
        """All districts, following the pagination."""
        districts = []
        page = 1
        while page <= MAX_DISTRICT_PAGES:
            params = {"page": page}
            if querystring:
                params["querystring"] = querystring
            data = self.request("GET", "districts", params=params)

            records = _records(data.get("data"))
            if not records:
                break
            districts.extend(records)

            nested = data.get("data") if isinstance(data.get("data"), dict) else {}
            last_page = _as_int(data.get("last_page") or nested.get("last_page")) or 1
            current = _as_int(data.get("current_page") or nested.get("current_page")) or page
            if current >= last_page:
                break
            page = current + 1

        logger.info("Fetched %s districts from Sendit (%s pages)", len(districts), page)
        return districts

    def get_district(self, district_id) -> Optional[dict]:
        data = self.request("GET", f"districts/{district_id}")
        return data.get("data") or None

    def create_delivery(self, payload: dict) -> dict:
        data = self.request("POST", "deliveries", json=payload)
        delivery = data.get("data")
        if not isinstance(delivery, dict) or not delivery.get("code"):
            raise SenditAPIError(
                data.get("message") or "Failed to create delivery",
                code=_as_int(data.get("code")),
                data=data,
            )
        return delivery

    def get_delivery(self, code: str) -> Optional[dict]:
        data = self.request("GET", f"deliveries/{code}")
        return data.get("data") or None

    def find_delivery_by_reference(self, reference: str) -> Optional[dict]:
        data = self.request("GET", "deliveries", params={"reference": reference})
        for record in _records(data.get("data")):
            if isinstance(record, dict) and record.get("code"):
                return record
        return None

    def delivery_statuses(self) -> dict:
        data = self.request("GET", "all-status-deliveries")
        return data.get("data") or {}
