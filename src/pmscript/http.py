"""Conversion of HTTP client responses into ResponseData.

The HTTP call itself is performed by the host's client; scripts and
extraction rules only ever see the ResponseData built here.
"""

import json

import httpx
from pmscript_models import ResponseData


def response_data_from_httpx(response: httpx.Response, response_time: float | None = None) -> ResponseData:
    """Build ResponseData from an httpx response.

    JSON bodies are decoded, anything else is kept as text. Header names are
    lower-cased and repeated headers (Set-Cookie) are joined by newlines.
    """
    headers: dict[str, str] = {}
    for name, value in response.headers.multi_items():
        name = name.lower()
        headers[name] = f"{headers[name]}\n{value}" if name in headers else value

    data: object
    content_type = response.headers.get("content-type", "")
    if "json" in content_type and response.content:
        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            data = response.text
    else:
        data = response.text

    if response_time is None:
        try:
            response_time = response.elapsed.total_seconds() * 1000
        except RuntimeError:
            response_time = 0.0

    return ResponseData(
        data=data,
        headers=headers,
        status=response.status_code,
        response_time=response_time,
    )
