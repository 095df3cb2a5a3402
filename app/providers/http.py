"""Thin requests wrapper shared by the provider adapters.

Every call carries a timeout. Transport failures become
ProviderTransportError and non-2xx answers become ProviderError, so callers
never have to know about requests' exception types.
"""

import logging
from typing import Any, Dict, Optional

import requests

from app.config import PROVIDER_REQUEST_TIMEOUT
from app.core import ProviderError, ProviderTransportError

logger = logging.getLogger(__name__)


class ProviderHttpClient:
    def __init__(
        self,
        provider: str,
        base_url: str,
        timeout: float = PROVIDER_REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.provider = provider
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def url(self, endpoint: str) -> str:
        if endpoint.startswith("http://") or endpoint.startswith("https://"):
            return endpoint
        return f"{self.base_url}{endpoint}"

    def request(
        self,
        method: str,
        endpoint: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        auth: Optional[Any] = None,
    ) -> Any:
        """Perform one call and return the decoded JSON body (None when empty)."""
        url = self.url(endpoint)
        try:
            r = self.session.request(
                method,
                url,
                params=params,
                json=json,
                data=data,
                headers=headers,
                auth=auth,
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise ProviderTransportError(
                self.provider, f"{method} {endpoint} failed: {exc}"
            ) from exc
        except requests.RequestException as exc:
            raise ProviderError(self.provider, f"{method} {endpoint} failed: {exc}") from exc

        if r.status_code >= 400:
            logger.debug(
                "%s %s %s -> %s", self.provider, method, endpoint, r.status_code
            )
            raise ProviderError(
                self.provider,
                f"{method} {endpoint} returned an error",
                status_code=r.status_code,
            )

        if not r.content:
            return None
        try:
            return r.json()
        except ValueError as exc:
            raise ProviderError(
                self.provider, f"{method} {endpoint} returned invalid JSON"
            ) from exc
