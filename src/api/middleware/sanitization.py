"""Input sanitization stage.

Two kinds of hostile input are neutralised in the parsed body and in the
query string before any handler sees them:

- **Operator injection**: keys beginning with ``$`` or containing ``.`` are
  removed (or, if configured, the request is rejected).
- **Script injection**: ``<`` is replaced by ``&lt;`` in every string.

The cleaned body replaces ``request.state.body`` and is re-encoded so that
anything reading the raw stream downstream sees the same data.
"""

from typing import Any, Literal
from urllib.parse import parse_qsl, urlencode

import orjson
from loguru import logger
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Receive, Scope, Send

from src.core.exceptions import ValidationError

type OperatorKeyAction = Literal["strip", "reject"]


def is_operator_key(key: str) -> bool:
    """Whether ``key`` could be interpreted as a query operator or path."""
    return key.startswith("$") or "." in key


def escape_markup(value: str) -> str:
    """Neutralise markup by escaping the opening angle bracket."""
    return value.replace("<", "&lt;")


class InputSanitizer:
    """Recursive cleaner for parsed request data.

    Args:
        operator_key_action: ``strip`` drops operator keys, ``reject`` raises.
        escape: Escape markup in strings.
    """

    def __init__(
        self, *, operator_key_action: OperatorKeyAction = "strip", escape: bool = True
    ) -> None:
        self.operator_key_action = operator_key_action
        self.escape = escape

    def clean(self, value: Any, removed: list[str], path: str = "") -> Any:  # noqa: ANN401 - any parsed payload
        """Return a cleaned copy of ``value``, recording dropped key paths.

        Raises:
            ValidationError: If an operator key is found and the action is
                ``reject``.
        """
        if isinstance(value, dict):
            cleaned: dict[str, Any] = {}
            for key, item in value.items():
                key_path = f"{path}.{key}" if path else str(key)
                if is_operator_key(str(key)):
                    if self.operator_key_action == "reject":
                        raise ValidationError(
                            "Request contains a forbidden key",
                            context={"key": key_path},
                        )
                    removed.append(key_path)
                    continue
                cleaned[self.clean_string(str(key))] = self.clean(
                    item, removed, key_path
                )
            return cleaned
        if isinstance(value, list):
            return [self.clean(item, removed, path) for item in value]
        if isinstance(value, str):
            return self.clean_string(value)
        return value

    def clean_string(self, value: str) -> str:
        return escape_markup(value) if self.escape else value

    def clean_query(
        self, pairs: list[tuple[str, str]], removed: list[str]
    ) -> list[tuple[str, str]]:
        """Clean decoded query string pairs."""
        wrapped = [{key: value} for key, value in pairs]
        cleaned: list[tuple[str, str]] = []
        for pair in wrapped:
            cleaned.extend(self.clean(pair, removed).items())
        return cleaned


def encode_body(body: Any, body_format: str) -> bytes:  # noqa: ANN401 - any parsed payload
    """Serialize a cleaned body back into its wire format."""
    if body_format == "json":
        return orjson.dumps(body)
    return urlencode(body, doseq=True).encode("utf-8")


class SanitizationMiddleware:
    """Clean the parsed body and the query string of every request.

    Args:
        app: The ASGI application to wrap.
        operator_key_action: What to do with operator keys.
        escape_markup: Escape markup in string values.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        operator_key_action: OperatorKeyAction = "strip",
        escape_markup: bool = True,
    ) -> None:
        self.app = app
        self.sanitizer = InputSanitizer(
            operator_key_action=operator_key_action, escape=escape_markup
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        removed: list[str] = []
        scope = self._clean_query(scope, removed)
        scope = self._clean_body(scope, removed)

        if removed:
            logger.warning(
                "Removed {} operator key(s) from request input",
                len(removed),
                removed_keys=removed,
            )

        await self.app(scope, receive, send)

    def _clean_query(self, scope: Scope, removed: list[str]) -> Scope:
        query_string = scope.get("query_string", b"")
        if not query_string:
            return scope
        pairs = parse_qsl(query_string.decode("latin-1"), keep_blank_values=True)
        cleaned = self.sanitizer.clean_query(pairs, removed)
        if cleaned == pairs:
            return scope
        return {**scope, "query_string": urlencode(cleaned).encode("latin-1")}

    def _clean_body(self, scope: Scope, removed: list[str]) -> Scope:
        state = scope.setdefault("state", {})
        body = state.get("body")
        if not body:
            return scope

        cleaned = self.sanitizer.clean(body, removed)
        state["body"] = cleaned
        body_format = state.get("body_format")
        if cleaned == body or body_format is None:
            return scope

        raw = encode_body(cleaned, body_format)
        state["raw_body"] = raw
        scope = {**scope, "headers": list(scope["headers"])}
        MutableHeaders(scope=scope)["content-length"] = str(len(raw))
        return scope
