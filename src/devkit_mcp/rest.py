"""Generic REST collaborator shared by every remote tool group.

One ``RestClient`` per external service wraps a long-lived ``httpx.AsyncClient``
configured with the service's base URL and auth scheme. Non-success responses
are classified here, at the failing call, into the ``RemoteError`` family.

``RestCall`` lets a handler be declared as data (method, path template, which
arguments go to the query string or body) instead of hand-written request code.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence
from urllib.parse import quote

import httpx

from .errors import AuthError, NotFoundError, RateLimitError, RemoteError
from .schemas import ToolParameters

logger = logging.getLogger("devkit-mcp.rest")

# Body fragments that identify a rate-limit rejection disguised as an auth failure
RATE_LIMIT_SIGNATURES = (
    "User API Key Rate limit exceeded",
    "API rate limit exceeded",
    "secondary rate limit",
)


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _body_text(body: Any) -> str:
    return body if isinstance(body, str) else str(body)


def classify_error(service: str, response: httpx.Response) -> RemoteError:
    """Map a non-success response onto the remote error taxonomy."""
    body = _response_body(response)
    status = response.status_code
    text = _body_text(body).lower()

    if status == 429 or (
        status in (401, 403) and any(sig.lower() in text for sig in RATE_LIMIT_SIGNATURES)
    ):
        return RateLimitError(service, status, body, message=f"{service} API rate limit exceeded")
    if status == 404:
        return NotFoundError(service, status, body, message=f"{service} resource not found")
    if status in (401, 403):
        return AuthError(service, status, body, message=f"{service} API authorization failed: {status}")
    return RemoteError(
        service, status, body, message=f"{service} API error: {status} {response.reason_phrase}".rstrip()
    )


def encode_path_segment(value: Any) -> str:
    """URL-encode one path segment (``group/project`` becomes ``group%2Fproject``)."""
    return quote(str(value), safe="")


def _drop_none(data: Optional[dict]) -> Optional[dict]:
    if data is None:
        return None
    return {k: v for k, v in data.items() if v is not None}


class RestClient:
    """Long-lived HTTP collaborator for one external service."""

    def __init__(
        self,
        service: str,
        base_url: str,
        *,
        headers: Optional[dict[str, str]] = None,
        auth: Optional[httpx.Auth] = None,
        proxy: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.service = service
        self.base_url = base_url.rstrip("/")
        client_kwargs: dict[str, Any] = {
            "base_url": self.base_url,
            "headers": {"Accept": "application/json", **(headers or {})},
            "timeout": timeout,
        }
        if auth is not None:
            client_kwargs["auth"] = auth
        if transport is not None:
            client_kwargs["transport"] = transport
        elif proxy:
            client_kwargs["proxy"] = proxy
        self._client = httpx.AsyncClient(**client_kwargs)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Optional[Any] = None,
    ) -> Any:
        """Issue one request and return the decoded body.

        Raises:
            RemoteError: (or a subtype) on any non-2xx response
            httpx.RequestError: on network failures
        """
        if isinstance(json, dict):
            json = _drop_none(json)
        response = await self._client.request(method, path, params=_drop_none(params), json=json)
        if response.is_error:
            error = classify_error(self.service, response)
            logger.error(
                f"{self.service} {method} {path} failed: {response.status_code} "
                f"({type(error).__name__}) body={error.body!r}"
            )
            raise error
        if response.status_code == 204 or not response.content:
            return None
        return _response_body(response)

    async def get(self, path: str, *, params: Optional[dict] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, *, json: Optional[Any] = None, params: Optional[dict] = None) -> Any:
        return await self.request("POST", path, json=json, params=params)

    async def put(self, path: str, *, json: Optional[Any] = None, params: Optional[dict] = None) -> Any:
        return await self.request("PUT", path, json=json, params=params)

    async def delete(self, path: str, *, params: Optional[dict] = None) -> Any:
        return await self.request("DELETE", path, params=params)

    async def aclose(self) -> None:
        await self._client.aclose()


@dataclass(frozen=True)
class RestCall:
    """Declarative handler: one REST request built from validated arguments.

    Attributes:
        method: HTTP method
        path: Path template; ``{name}`` placeholders are filled from argument
            attributes and URL-encoded
        query: Attribute names sent as query parameters
        static_query: Fixed query parameters sent with every request
        body: Attribute names sent in the JSON body
        rename: Attribute name to remote field name, where they differ
        wrap: Key to wrap the decoded response in (``{"issues": [...]}``)
        success: Payload returned when the remote answers with no body
    """

    method: str
    path: str
    query: Sequence[str] = ()
    static_query: dict[str, Any] = field(default_factory=dict)
    body: Sequence[str] = ()
    rename: dict[str, str] = field(default_factory=dict)
    wrap: Optional[str] = None
    success: Optional[dict] = None

    def build_path(self, args: ToolParameters) -> str:
        values = {name: encode_path_segment(value) for name, value in args.model_dump(by_alias=False).items()}
        return self.path.format(**values)

    async def __call__(self, client: RestClient, args: ToolParameters) -> Any:
        params = dict(self.static_query)
        if self.query:
            params.update(args.remote_fields(*self.query, rename=self.rename))
        json = args.remote_fields(*self.body, rename=self.rename) if self.body else None
        result = await client.request(self.method, self.build_path(args), params=params or None, json=json)
        if result is None and self.success is not None:
            return self.success
        if self.wrap:
            return {self.wrap: result}
        return result
