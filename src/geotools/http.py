"""
src/geotools/http.py

Shared HTTP plumbing for the geodata adapters.

- build_session(): requests.Session carrying the identifying User-Agent
- get_json() / post_json(): one bounded call, raising on HTTP errors and bad JSON
- first_success(): ordered fallback over interchangeable attempts
"""


import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

import requests

from orchestrator.errors import AllAttemptsFailed


logger = logging.getLogger(__name__)

T = TypeVar("T")

# An attempt is a label (usually the endpoint URL) and a callable taking the timeout
Attempt = Tuple[str, Callable[[float], T]]


def build_session(user_agent: str) -> requests.Session:
    """Session shared by one adapter. Nominatim rejects requests without a User-Agent."""

    session = requests.Session()
    session.headers.update({"User-Agent": user_agent, "Accept": "application/json"})

    return session


def get_json(session: requests.Session, url: str, *, params: Optional[Dict[str, Any]] = None, timeout: float) -> Any:
    """GET `url` and decode the JSON body. Raises requests.RequestException or ValueError."""

    resp = session.get(url, params=params, timeout=timeout)
    resp.raise_for_status()

    return resp.json()


def post_json(session: requests.Session, url: str, *, data: Dict[str, Any], timeout: float) -> Any:
    """POST form-encoded `data` to `url` and decode the JSON body."""

    resp = session.post(url, data=data, timeout=timeout)
    resp.raise_for_status()

    return resp.json()


def first_success(attempts: Sequence[Attempt], timeout: float) -> T:
    """
    Run attempts in order and return the first result.

    Later attempts are never started once one succeeds. Network errors, HTTP
    error statuses and undecodable bodies (ValueError) count as failures.

    Args:
        attempts: ordered (label, operation) pairs; each operation receives `timeout`.
        timeout: per-attempt bound in seconds.

    Raises:
        AllAttemptsFailed: every attempt failed; carries (label, error) pairs in order.
        ValueError: no attempts were given.
    """

    if not attempts:
        raise ValueError("first_success() needs at least one attempt")

    errors: List[Tuple[str, Exception]] = []

    for label, operation in attempts:
        try:
            logger.debug("Trying %s (timeout %.1fs)", label, timeout)
            result = operation(timeout)
        except (requests.RequestException, ValueError) as e:
            logger.warning("Attempt %s failed: %s", label, e)
            errors.append((label, e))
            continue
        logger.info("Attempt %s succeeded", label)
        return result

    raise AllAttemptsFailed(errors)
