"""Pooled ``requests`` session for the hosted database's REST endpoint."""

from __future__ import annotations

from typing import Mapping, Optional

import requests
from requests import Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .. import config

__all__ = ["create_rest_session"]

# Inserts are not idempotent; everything else is safe to replay.
RETRYABLE_METHODS = frozenset({"GET", "PATCH", "DELETE"})
RETRYABLE_STATUSES = (429, 500, 502, 503, 504)


def create_rest_session(
    base_url: Optional[str] = None,
    *,
    max_retries: Optional[int] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> Session:
    """Return a session that retries transient backend failures.

    Only URLs under ``base_url`` (every HTTPS URL when omitted) get the
    retrying adapter. ``headers`` are added to the JSON defaults sent with
    every request.
    """

    retries = config.HTTP_MAX_RETRIES if max_retries is None else max_retries
    retry = Retry(
        total=retries,
        backoff_factor=0.5,
        status_forcelist=RETRYABLE_STATUSES,
        allowed_methods=RETRYABLE_METHODS,
        respect_retry_after_header=True,
        raise_on_status=False,
    )
    adapter = HTTPAdapter(
        pool_connections=config.HTTP_POOL_CONNECTIONS,
        pool_maxsize=config.HTTP_POOL_MAXSIZE,
        max_retries=retry,
    )
    session = requests.Session()
    prefix = f"{base_url.rstrip('/')}/" if base_url else "https://"
    session.mount(prefix, adapter)
    session.headers.update(
        {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
    )
    if headers:
        session.headers.update(headers)
    return session
