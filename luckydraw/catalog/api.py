import logging
import os
from urllib.parse import urljoin
from typing import Any, Mapping, Optional

import requests
from dotenv import load_dotenv

from ..draw.voucher import Voucher

logger = logging.getLogger(__name__)


class VoucherClient:
    """Read-only client for the voucher catalog service."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: int = 45,
        retries: int = 2,
        session: Optional[requests.Session] = None,
    ):
        load_dotenv()
        url = base_url or os.getenv("VOUCHER_API_BASE_URL")
        if not url:
            raise ValueError("Environment variable 'VOUCHER_API_BASE_URL' is not set")
        if retries < 1:
            raise ValueError("retries must be at least 1")

        self.base_url = url.rstrip("/")
        self.timeout = timeout
        self.retries = retries
        self.session = session or requests.Session()

    @property
    def headers(self) -> Mapping[str, str]:
        return {"Accept": "application/json"}

    def _get_json(self, path: str, *, params: Optional[dict] = None) -> Any:
        """GET ``path`` and decode its JSON body, retrying on failure.

        A response whose content type is not JSON (e.g. a tunnel's HTML
        interstitial) counts as a failed attempt.
        """
        url = urljoin(self.base_url + "/", path.lstrip("/"))
        for attempt in range(1, self.retries + 1):
            last_attempt = attempt == self.retries
            logger.debug("Fetching %s (attempt %d/%d)", url, attempt, self.retries)
            try:
                r = self.session.get(
                    url, headers=self.headers, params=params, timeout=self.timeout
                )
                r.raise_for_status()
            except requests.RequestException as e:
                if last_attempt:
                    raise
                logger.warning("Request to %s failed: %s; retrying", url, e)
                continue

            content_type = r.headers.get("Content-Type", "")
            if "application/json" not in content_type:
                if last_attempt:
                    raise RuntimeError(
                        f"Response from {url} is not JSON (Content-Type: {content_type!r})"
                    )
                logger.warning("Response from %s is not JSON; retrying", url)
                continue
            return r.json() if r.content else None

    def fetch_raw_catalog(self) -> list[dict]:
        data = self._get_json("/Voucher")
        if data is None:
            return []
        if not isinstance(data, list):
            raise RuntimeError(f"Unexpected voucher catalog response: {data!r}")
        return data

    def fetch_catalog(self) -> list[Voucher]:
        """Return every voucher in the catalog, in the service's order.

        Payloads that cannot be parsed are skipped with a warning.
        """
        vouchers: list[Voucher] = []
        for item in self.fetch_raw_catalog():
            if not isinstance(item, dict):
                logger.warning("Skipping non-object voucher payload: %r", item)
                continue
            try:
                vouchers.append(Voucher.from_payload(item))
            except (TypeError, ValueError) as e:
                logger.warning("Skipping malformed voucher payload: %s", e)
        return vouchers
