"""High-level client composing auth, transport, decoding and pagination."""

import logging
from collections.abc import Callable
from datetime import timedelta
from typing import Any

from json_api_client.auth.credentials import SecretResolver
from json_api_client.auth.strategies import AuthContext, AuthStrategy, NoAuth, apply_auth
from json_api_client.auth.tokens import TokenCache
from json_api_client.config import ClientSettings
from json_api_client.decoding import JsonValue
from json_api_client.pagination import AdvanceRule, Page, Paginator, next_page_number
from json_api_client.request import RequestSpec
from json_api_client.transport.http import HttpClient, Response

logger = logging.getLogger(__name__)

ExtractPage = Callable[[Any, JsonValue], Page]


class ApiClient:
    """Authenticated JSON API client.

    Holds one :class:`HttpClient`, one :class:`SecretResolver` and one
    :class:`TokenCache` for a logical session. Per-API code supplies the
    request descriptions, the auth strategy and the field extraction.

    Example:
        ```python
        async with ApiClient.from_settings(ClientSettings()) as api:
            stations = await api.get_json(
                RequestSpec("https://gbfs.example.com/station_status.json"),
            )
            news = await api.get_json(
                RequestSpec("https://newsapi.org/v2/everything", params={"q": "bikes"}),
                QueryKeyParam("apiKey", "NEWS_API_KEY"),
            )
        ```
    """

    def __init__(
        self,
        http: HttpClient | None = None,
        resolver: SecretResolver | None = None,
        tokens: TokenCache | None = None,
        max_pages: int | None = None,
    ):
        self.http = http or HttpClient()
        self.resolver = resolver or SecretResolver()
        self.tokens = tokens or TokenCache()
        self.max_pages = max_pages
        self._context = AuthContext(resolver=self.resolver, tokens=self.tokens, http=self.http)

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        resolver: SecretResolver | None = None,
        transport: Any = None,
    ) -> "ApiClient":
        http = HttpClient(
            timeout=settings.timeout,
            connect_timeout=settings.connect_timeout,
            user_agent=settings.user_agent,
            transport=transport,
        )
        tokens = TokenCache(leeway=timedelta(seconds=settings.token_leeway))
        return cls(http=http, resolver=resolver, tokens=tokens, max_pages=settings.max_pages)

    async def __aenter__(self) -> "ApiClient":
        await self.http.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.http.__aexit__(exc_type, exc_val, exc_tb)

    async def aclose(self) -> None:
        await self.http.aclose()

    async def prepare(self, spec: RequestSpec, auth: AuthStrategy | None = None) -> RequestSpec:
        """Apply ``auth`` to ``spec`` and return the decorated copy."""
        return await apply_auth(auth or NoAuth(), spec, self._context)

    async def send(self, spec: RequestSpec, auth: AuthStrategy | None = None) -> Response:
        return await self.http.execute(await self.prepare(spec, auth))

    async def get_json(self, spec: RequestSpec, auth: AuthStrategy | None = None) -> JsonValue:
        """Authenticate, send and decode one request.

        Raises:
            AuthError: The strategy could not be applied.
            TransportError: No response was received.
            HttpStatusError: The response status was 400 or above.
            DecodeError: The body is not valid JSON.
        """
        response = await self.send(spec, auth)
        return response.json()

    def paginate(
        self,
        spec: RequestSpec,
        extract_page: ExtractPage,
        auth: AuthStrategy | None = None,
        *,
        cursor_param: str = "page",
        initial_cursor: Any = 1,
        advance: AdvanceRule = next_page_number,
        max_pages: int | None = None,
    ) -> Paginator:
        """Build a :class:`Paginator` that sets ``cursor_param`` on each request.

        Args:
            spec: Request for the first page (without the cursor parameter).
            extract_page: Turns ``(cursor, decoded body)`` into a :class:`Page`.
            auth: Strategy applied to every page request.
            cursor_param: Query parameter carrying the page index or cursor.
            initial_cursor: Cursor of the first page. ``None`` leaves the
                parameter off the first request.
            advance: Rule deriving the next cursor.
            max_pages: Upper bound on pages (defaults to the client's setting).
        """

        async def fetch_page(cursor: Any) -> Page:
            data = await self.get_json(spec.with_param(cursor_param, cursor), auth)
            return extract_page(cursor, data)

        return Paginator(
            fetch_page,
            advance,
            initial_cursor=initial_cursor,
            max_pages=max_pages if max_pages is not None else self.max_pages,
        )
