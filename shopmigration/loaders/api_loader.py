"""REST API target profile for a remote shop import endpoint."""

import base64
import time
import logging
import requests
from typing import Any, Dict, Optional

from .base import ImportKind, TargetError, TargetProfile

logger = logging.getLogger(__name__)


class APITarget(TargetProfile):
    """
    Target profile speaking to a shop's import API.

    Endpoints (relative to `base_url`):
    - POST /import/{kind}       -> identity fields of the written record
    - GET  /lookups/{name}      -> {"value": ...}
    - POST /commands/{name}     -> empty body or {"ok": true}
    """

    name = "api"

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        auth_type: str = "bearer",  # bearer, basic, header
        auth_header: str = "Authorization",
        rate_limit: float = 10.0,
        timeout: float = 30.0
    ):
        """
        Initialize the API target.

        Args:
            base_url: Base URL for the import API
            api_key: API key for authentication
            auth_type: Type of authentication
            auth_header: Header name for authentication
            rate_limit: Max requests per second
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.auth_type = auth_type
        self.auth_header = auth_header
        self.rate_limit = rate_limit
        self.timeout = timeout
        self._last_request_time = 0.0
        self._session = self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with authentication."""
        session = requests.Session()

        if self.api_key:
            if self.auth_type == "bearer":
                session.headers["Authorization"] = f"Bearer {self.api_key}"
            elif self.auth_type == "basic":
                credentials = base64.b64encode(f"{self.api_key}:".encode()).decode()
                session.headers["Authorization"] = f"Basic {credentials}"
            elif self.auth_type == "header":
                session.headers[self.auth_header] = self.api_key

        session.headers["Content-Type"] = "application/json"

        return session

    def _rate_limit_wait(self):
        """Wait to respect rate limits."""
        if self.rate_limit > 0:
            elapsed = time.time() - self._last_request_time
            wait_time = (1.0 / self.rate_limit) - elapsed
            if wait_time > 0:
                time.sleep(wait_time)
        self._last_request_time = time.time()

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Send a request and return the decoded body, raising TargetError on failure."""
        url = f"{self.base_url}{path}"
        self._rate_limit_wait()

        try:
            response = self._session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            error_msg = str(e)
            try:
                error_data = e.response.json()
                error_msg = error_data.get("message") or error_data.get("error") or str(error_data)
            except ValueError:
                pass
            raise TargetError(f"{method} {path} failed ({e.response.status_code}): {error_msg}") from e
        except requests.exceptions.RequestException as e:
            raise TargetError(f"{method} {path} failed: {e}") from e

        if not response.text:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise TargetError(f"{method} {path} returned invalid JSON") from e
        return data if isinstance(data, dict) else {"value": data}

    def _lookup(self, name: str, **params) -> Any:
        return self._request("GET", f"/lookups/{name}", params=params).get("value")

    def _command(self, name: str, **payload) -> None:
        self._request("POST", f"/commands/{name}", json=payload)

    def import_record(self, kind: ImportKind, record: Dict[str, Any]) -> Dict[str, Any]:
        kind = ImportKind(kind)
        data = self._request("POST", f"/import/{kind.value}", json=record)
        # Some endpoints wrap the identity fields
        return data.get("data", data)

    def root_category_for_locale(self, locale_id) -> Optional[str]:
        value = self._lookup("root_category", locale_id=locale_id)
        return str(value) if value is not None else None

    def update_category(self, category_id, fields: Dict[str, Any]) -> None:
        self._command("update_category", category_id=category_id, fields=fields)

    def article_id_for_detail(self, detail_id) -> Optional[str]:
        value = self._lookup("article_for_detail", detail_id=detail_id)
        return str(value) if value is not None else None

    def detail_has_configurator_options(self, detail_id) -> bool:
        return bool(self._lookup("detail_configurator_options", detail_id=detail_id))

    def promote_detail(self, old_detail_id, new_detail_id, article_id) -> None:
        self._command(
            "promote_detail",
            old_detail_id=old_detail_id,
            new_detail_id=new_detail_id,
            article_id=article_id,
        )

    def set_article_configuration(self, record: Dict[str, Any]) -> None:
        self._command(
            "set_article_configuration",
            article_id=record.get("article_id"),
            detail_id=record.get("maindetails_id"),
            additional_text=record.get("additional_text"),
            variant_group_names=record.get("variant_group_names"),
        )

    def update_article(self, article_id, fields: Dict[str, Any]) -> None:
        self._command("update_article", article_id=article_id, fields=fields)

    def delete_article_links(self, article_id) -> None:
        self._command("delete_article_links", article_id=article_id)

    def price_context(self, detail_id, price_group: str) -> Optional[Dict[str, Any]]:
        return self._lookup("price_context", detail_id=detail_id, price_group=price_group)

    def reset_block_prices(self) -> None:
        self._command("reset_block_prices")

    def country_id(self, iso: str) -> int:
        return int(self._lookup("country", iso=iso) or 0)

    def shop_locale(self, shop_id) -> Optional[int]:
        return self._lookup("shop_locale", shop_id=shop_id)

    def default_payment_id(self) -> Optional[int]:
        return self._lookup("default_payment")

    def validate_connection(self) -> bool:
        """Validate connection to the API."""
        try:
            self._rate_limit_wait()
            response = self._session.get(self.base_url, timeout=self.timeout)
            return response.status_code < 500
        except requests.exceptions.RequestException as e:
            logger.error(f"API connection validation failed: {e}")
            return False
