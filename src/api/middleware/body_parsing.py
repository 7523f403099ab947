"""Request body parsing stage.

JSON and urlencoded bodies of POST/PUT/PATCH/DELETE requests are read once,
size-checked and parsed into ``request.state.body``. The raw bytes are kept
in ``request.state.raw_body`` and replayed to whatever reads the body
downstream, so route handlers and later stages see one consistent payload.
Any other request gets an empty ``body``.
"""

from typing import Any, Literal
from urllib.parse import parse_qsl

import orjson
from starlette.datastructures import Headers
from starlette.requests import ClientDisconnect
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from src.api.constants import (
    FORM_CONTENT_TYPE,
    JSON_CONTENT_TYPES,
    JSON_SUFFIX,
    REQUEST_BODY_METHODS,
)
from src.core.exceptions import PayloadTooLargeError, ValidationError

type BodyFormat = Literal["json", "form"]


def detect_body_format(content_type: str | None) -> BodyFormat | None:
    """Map a Content-Type header to the body format this stage parses.

    Example:
        >>> detect_body_format("application/json; charset=utf-8")
        'json'
    """
    if not content_type:
        return None
    media_type = content_type.split(";", 1)[0].strip().lower()
    if media_type in JSON_CONTENT_TYPES or media_type.endswith(JSON_SUFFIX):
        return "json"
    if media_type == FORM_CONTENT_TYPE:
        return "form"
    return None


def parse_form(raw: bytes) -> dict[str, Any]:
    """Parse an urlencoded body.

    Blank values are kept and repeated keys collect into a list.

    Raises:
        ValidationError: If the body is not valid UTF-8.
    """
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ValidationError("Form body is not valid UTF-8", cause=e) from e

    parsed: dict[str, Any] = {}
    for key, value in parse_qsl(text, keep_blank_values=True):
        if key not in parsed:
            parsed[key] = value
        elif isinstance(parsed[key], list):
            parsed[key].append(value)
        else:
            parsed[key] = [parsed[key], value]
    return parsed


def parse_json(raw: bytes) -> Any:  # noqa: ANN401 - any JSON document
    """Parse a JSON body; an empty body is an empty object.

    Raises:
        ValidationError: If the body is not a JSON document.
    """
    if not raw.strip():
        return {}
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise ValidationError("Malformed JSON body", cause=e) from e


class BodyParsingMiddleware:
    """Parse JSON and urlencoded request bodies with size limits.

    Args:
        app: The ASGI application to wrap.
        json_limit: Maximum JSON body size in bytes.
        form_limit: Maximum urlencoded body size in bytes.
    """

    def __init__(self, app: ASGIApp, *, json_limit: int, form_limit: int) -> None:
        self.app = app
        self.limits: dict[BodyFormat, int] = {"json": json_limit, "form": form_limit}

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state = scope.setdefault("state", {})
        state["body"] = {}

        headers = Headers(scope=scope)
        body_format = detect_body_format(headers.get("content-type"))
        if scope["method"] not in REQUEST_BODY_METHODS or body_format is None:
            await self.app(scope, receive, send)
            return

        limit = self.limits[body_format]
        declared = headers.get("content-length", "")
        if declared.isdigit() and int(declared) > limit:
            raise PayloadTooLargeError(
                f"Request body exceeds the {limit} byte limit",
                limit=limit,
                context={"content_length": int(declared)},
            )

        raw = await self._read_body(receive, limit)
        state["raw_body"] = raw
        state["body_format"] = body_format
        state["body"] = parse_json(raw) if body_format == "json" else parse_form(raw)

        await self.app(scope, replay_body(scope, receive), send)

    @staticmethod
    async def _read_body(receive: Receive, limit: int) -> bytes:
        chunks: list[bytes] = []
        size = 0
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                raise ClientDisconnect
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > limit:
                raise PayloadTooLargeError(
                    f"Request body exceeds the {limit} byte limit", limit=limit
                )
            chunks.append(chunk)
            if not message.get("more_body", False):
                return b"".join(chunks)


def replay_body(scope: Scope, receive: Receive) -> Receive:
    """Build a receive callable that first yields ``state["raw_body"]``.

    The body is looked up at the first read, so later stages may replace
    ``raw_body`` before anything downstream consumes it.
    """
    replayed = False

    async def wrapped_receive() -> Message:
        nonlocal replayed
        if not replayed:
            replayed = True
            return {
                "type": "http.request",
                "body": scope["state"]["raw_body"],
                "more_body": False,
            }
        return await receive()

    return wrapped_receive
