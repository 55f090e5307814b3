from typing import Optional, Dict

import httpx


def http_request(method: str, url: str, *, config: Optional[Dict] = None) -> str:
    """
    Core HTTP helper.

    Sends one request, drains the whole body and returns it as text. The
    status code is not inspected and nothing is retried; transport errors
    propagate as httpx exceptions for the effect bridge to classify.

    config:
      - timeout: seconds, or None to wait indefinitely (default)
      - follow-redirects: bool (default True)
      - headers: dict of extra request headers
    """
    cfg = dict(config or {})
    timeout = cfg.pop('timeout', None)
    follow = bool(cfg.pop('follow-redirects', True))
    headers = dict(cfg.pop('headers', None) or {})

    with httpx.Client(timeout=timeout, follow_redirects=follow) as client:
        resp = client.request(method.upper(), url, headers=headers)
        resp.read()
        return resp.text


def http_get(url: str, config: Optional[Dict] = None) -> str:
    return http_request('GET', url, config=config)
