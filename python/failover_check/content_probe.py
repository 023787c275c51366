from __future__ import annotations

import logging
import threading
import warnings
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import urlsplit

import requests
from urllib3.exceptions import InsecureRequestWarning

from failover_check.errors import (
    ContentCheckError,
    ContentMismatchError,
    FetchError,
    InvalidURLError,
    ReadError,
)
from failover_check.poller import PollConfig

log = logging.getLogger(__name__)

_BODY_EXCERPT_CHARS = 512


@dataclass(frozen=True)
class ContentCheck:
    url: str
    expected: str
    user: str = ""
    password: str = ""
    insecure: bool = False
    request_timeout_s: float = 10.0

    def __repr__(self) -> str:
        return (
            f"ContentCheck(url={self.url!r}, expected={self.expected!r}, "
            f"user={self.user!r}, insecure={self.insecure})"
        )


def validate_url(url: str) -> None:
    try:
        parts = urlsplit(url)
    except ValueError as exc:
        raise InvalidURLError(f"could not parse url {url!r}: {exc}") from exc
    if parts.scheme not in {"http", "https"}:
        raise InvalidURLError(f"url must be absolute http(s), got {url!r}")
    if not parts.netloc:
        raise InvalidURLError(f"url has no host: {url!r}")


def fetch_body(check: ContentCheck, *, session: requests.Session | None = None) -> bytes:
    validate_url(check.url)
    http = session if session is not None else requests.Session()
    auth = (check.user, check.password) if check.user else None
    try:
        try:
            with warnings.catch_warnings():
                if check.insecure:
                    warnings.simplefilter("ignore", InsecureRequestWarning)
                response = http.get(
                    check.url,
                    auth=auth,
                    verify=not check.insecure,
                    timeout=check.request_timeout_s,
                    stream=True,
                )
        except requests.RequestException as exc:
            raise FetchError(f"GET {check.url} failed: {exc}") from exc

        try:
            with response:
                payload = response.content
        except (requests.RequestException, OSError) as exc:
            raise ReadError(f"reading body of {check.url} failed: {exc}") from exc
    finally:
        if session is None:
            http.close()

    log.debug("fetched url=%s status=%s bytes=%d", check.url, response.status_code, len(payload))
    return payload


def probe_content(check: ContentCheck, *, session: requests.Session | None = None) -> bool:
    """Fetch ``check.url`` and report whether the body contains ``check.expected``.

    Raises ``InvalidURLError`` before touching the network, ``FetchError`` when
    the request fails and ``ReadError`` when the body cannot be read. Non-2xx
    responses are matched like any other. Matching is done on the raw body
    bytes against the UTF-8 encoding of ``check.expected``.
    """
    body = fetch_body(check, session=session)
    matched = check.expected.encode("utf-8") in body
    if not matched:
        log.debug("expected content missing url=%s body=%r", check.url, body[:_BODY_EXCERPT_CHARS])
    return matched


def require_content(check: ContentCheck, *, session: requests.Session | None = None) -> None:
    if not probe_content(check, session=session):
        raise ContentMismatchError(f"{check.expected!r} not found at {check.url}")


def check_content(check: ContentCheck) -> int:
    log.debug("checking content url=%s expected=%r", check.url, check.expected)
    try:
        require_content(check)
    except ContentCheckError as exc:
        log.error("content check failed url=%s error=%s", check.url, exc)
        return 1
    return 0


def poll_for_content(
    check: ContentCheck,
    poll: PollConfig,
    *,
    check_fn: Callable[[ContentCheck], int] = check_content,
) -> int:
    """Probe ``check`` on every poll tick until it matches or the deadline passes.

    The ticker runs on a daemon thread; the caller waits on a completion event
    for at most ``poll.timeout_s``. Returns 0 on a match, 1 on timeout.
    """
    done = threading.Event()
    stop = threading.Event()

    def _tick() -> None:
        tick = 0
        while not stop.wait(poll.interval_s):
            tick += 1
            log.debug("content poll tick=%d url=%s", tick, check.url)
            if check_fn(check) == 0:
                done.set()
                return

    ticker = threading.Thread(target=_tick, name="content-poll", daemon=True)
    ticker.start()
    matched = done.wait(timeout=poll.timeout_s)
    stop.set()
    ticker.join(timeout=check.request_timeout_s)

    if matched:
        log.info("content check polling finished url=%s", check.url)
        return 0
    log.warning("content check polling timed out url=%s timeout_ms=%d", check.url, poll.timeout_ms)
    return 1
