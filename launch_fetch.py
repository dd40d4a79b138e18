"""Upstream client for the Launch Library launches endpoint."""

from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from error_handling import (
    ErrorCategory,
    ErrorInfo,
    ErrorSeverity,
    UpstreamError,
    classify_exception,
)
from logging_config import get_logger

logger = get_logger()

RETRY_ON_STATUS = (429, 500, 502, 503, 504)


def create_session(max_retries: int = 0, backoff_factor: float = 1.0) -> requests.Session:
    """
    Create a requests session for upstream calls.

    With max_retries=0 every fetch is a single round-trip. A positive value
    mounts a urllib3 retry policy on the transport for transient statuses.
    """
    session = requests.Session()
    if max_retries > 0:
        retry_strategy = Retry(
            total=max_retries,
            status_forcelist=RETRY_ON_STATUS,
            backoff_factor=backoff_factor,
            allowed_methods=frozenset(["GET"]),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
    return session


class LaunchClient:
    """Fetches batches of upcoming launches from the remote API."""

    def __init__(
        self,
        api_url: str,
        timeout: float = 30,
        user_agent: str = "LaunchCache/1.0",
        session: Optional[requests.Session] = None,
    ):
        self.api_url = api_url
        self.timeout = timeout
        self.user_agent = user_agent
        self.session = session or create_session()

    def fetch_batch(self, max_records: int) -> List[Dict[str, Any]]:
        """
        Fetch up to max_records launches in one request.

        Raises UpstreamError on transport errors, non-2xx statuses, bodies
        that are not JSON, or JSON without a ``results`` list.
        """
        logger.debug(f"Fetching up to {max_records} launches from {self.api_url}")
        try:
            response = self.session.get(
                self.api_url,
                params={"limit": max_records},
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise UpstreamError(classify_exception(e, url=self.api_url), e)

        if not response.ok:
            raise UpstreamError(
                ErrorInfo(
                    category=ErrorCategory.NETWORK,
                    severity=ErrorSeverity.HIGH if response.status_code >= 500 else ErrorSeverity.MEDIUM,
                    message=f"Launch API error: {response.status_code} {response.reason}",
                    details={"url": self.api_url, "status_code": response.status_code},
                )
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(
                ErrorInfo(
                    category=ErrorCategory.VALIDATION,
                    severity=ErrorSeverity.MEDIUM,
                    message="Launch API returned a non-JSON body",
                    details={"url": self.api_url},
                ),
                e,
            )

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise UpstreamError(
                ErrorInfo(
                    category=ErrorCategory.VALIDATION,
                    severity=ErrorSeverity.MEDIUM,
                    message="Invalid API response structure",
                    details={"url": self.api_url},
                )
            )

        logger.info(f"Fetched {len(results)} launches from external API")
        return results
