"""Facebook Graph API client: paginated list fetches and the send path.

Every response goes through ``raise_for_vendor_error`` before anything else
reads it, so a ``{"error": {...}}`` body always surfaces as a typed
FacebookError.
"""

import time
from typing import Any

import httpx
import logfire
from pydantic import ValidationError

from fb_messenger.config import Settings, get_settings
from fb_messenger.constants import ACCESS_TOKEN_PARAM, LOG_RESPONSE_BODY_CHARS
from fb_messenger.errors import (
    FacebookError,
    MalformedPageError,
    PaginationLoopError,
    raise_for_vendor_error,
)
from fb_messenger.logging_config import redact_url
from fb_messenger.models.messenger import Page


def relativize_url(url: str, api_root: str) -> str:
    """Turn a paging cursor into a path relative to ``api_root``.

    Absolute cursors must live under ``api_root`` (same scheme, host, port
    and version prefix). Relative cursors are used as given. The access
    token is dropped from the query; it is re-sent with each request.

    Raises:
        MalformedPageError: if an absolute cursor points outside the API root.
    """
    try:
        target = httpx.URL(url)
        root = httpx.URL(api_root)
    except httpx.InvalidURL as e:
        raise MalformedPageError(f"Invalid paging cursor: {e}") from e

    path = target.path
    if target.is_absolute_url:
        if (target.scheme, target.host, target.port) != (
            root.scheme,
            root.host,
            root.port,
        ):
            raise MalformedPageError(
                f"Paging cursor host {target.host!r} does not match API root"
            )
        root_path = root.path.rstrip("/")
        if root_path and not (
            path == root_path or path.startswith(root_path + "/")
        ):
            raise MalformedPageError(
                f"Paging cursor path {path!r} is outside API root {root_path!r}"
            )
        path = path[len(root_path):] or "/"

    query = str(target.params.remove(ACCESS_TOKEN_PARAM))
    return f"{path}?{query}" if query else path


class GraphAPIClient:
    """Thin async client over the Graph API.

    Example:
        >>> client = GraphAPIClient()
        >>> labels = await client.list_labels(access_token="...")
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            settings: Settings to use; defaults to ``get_settings()``
            transport: Optional httpx transport (for tests or proxies)
        """
        self._settings = settings or get_settings()
        self._transport = transport

    @property
    def api_root(self) -> str:
        return self._settings.api_root

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.api_root,
            timeout=timeout,
            transport=self._transport,
            headers={"Content-Type": "application/json"},
        )

    async def _get_page(
        self,
        client: httpx.AsyncClient,
        path: str,
        access_token: str,
        page_number: int,
    ) -> Page:
        response = await client.get(path, params={ACCESS_TOKEN_PARAM: access_token})
        url = redact_url(str(response.request.url))

        try:
            body = response.json()
        except ValueError:
            response.raise_for_status()
            raise MalformedPageError(f"Page {page_number} is not valid JSON ({url})")

        try:
            raise_for_vendor_error(body)
        except FacebookError as e:
            logfire.error(
                "Graph API returned an error while paginating",
                url=url,
                page=page_number,
                status_code=response.status_code,
                code=e.code,
                subcode=e.subcode,
                error_type=e.type,
            )
            raise

        response.raise_for_status()

        if not isinstance(body, dict) or not isinstance(body.get("data"), list):
            logfire.error(
                "Graph API page missing data",
                url=url,
                page=page_number,
                response_body=response.text[:LOG_RESPONSE_BODY_CHARS],
            )
            raise MalformedPageError(f"Page {page_number} has no 'data' array ({url})")

        try:
            return Page.model_validate(body)
        except ValidationError as e:
            raise MalformedPageError(f"Page {page_number} is malformed: {e}") from e

    async def fetch_all(self, url: str, access_token: str) -> list[Any]:
        """Fetch every page of a list endpoint and return all items in order.

        Follows ``paging.next`` until it is absent. Either all items are
        returned or an error is raised; partial results are never returned.

        Args:
            url: First page, relative to the API root or absolute under it
            access_token: Page access token sent with every request

        Raises:
            FacebookError: a page carried a vendor error
            MalformedPageError: a page had no ``data`` array or a bad cursor
            PaginationLoopError: a cursor repeated or the page ceiling was hit
            httpx.TimeoutException: a page fetch timed out
        """
        start_time = time.time()
        max_pages = self._settings.pagination_max_pages
        items: list[Any] = []
        seen: set[str] = set()
        next_path: str | None = relativize_url(url, self.api_root)
        pages = 0

        async with self._client(self._settings.graph_api_read_timeout_seconds) as client:
            while next_path is not None:
                if next_path in seen:
                    logfire.error(
                        "Paging cursor repeated",
                        url=redact_url(next_path),
                        pages=pages,
                    )
                    raise PaginationLoopError(
                        f"Paging cursor repeated after {pages} page(s): {redact_url(next_path)}"
                    )
                if pages >= max_pages:
                    logfire.error(
                        "Pagination page limit exceeded",
                        max_pages=max_pages,
                        url=redact_url(url),
                    )
                    raise PaginationLoopError(
                        f"More than {max_pages} pages returned for {redact_url(url)}"
                    )
                seen.add(next_path)

                try:
                    page = await self._get_page(client, next_path, access_token, pages + 1)
                except httpx.TimeoutException as e:
                    logfire.error(
                        "Graph API page fetch timed out",
                        url=redact_url(next_path),
                        page=pages + 1,
                        error=str(e),
                    )
                    raise
                pages += 1
                items.extend(page.data)

                next_url = page.next_url
                next_path = relativize_url(next_url, self.api_root) if next_url else None

        logfire.info(
            "Paginated fetch complete",
            url=redact_url(url),
            pages=pages,
            item_count=len(items),
            response_time_ms=(time.time() - start_time) * 1000,
        )
        return items

    async def list_labels(self, access_token: str) -> list[dict[str, Any]]:
        """List every custom label of the page."""
        return await self.fetch_all("/me/custom_labels?fields=name", access_token)

    async def list_user_labels(
        self, user_psid: str, access_token: str
    ) -> list[dict[str, Any]]:
        """List the custom labels attached to one user (PSID)."""
        return await self.fetch_all(
            f"/{user_psid}/custom_labels?fields=name", access_token
        )

    async def deliver(self, message: dict[str, Any], access_token: str) -> dict[str, Any]:
        """Send a message via the Send API.

        Uses the send timeout, which is longer than the read timeout.

        Args:
            message: Send API body, e.g. ``{"recipient": {...}, "message": {...}}``
            access_token: Page access token

        Returns:
            Decoded response body (``recipient_id`` and ``message_id``)

        Raises:
            FacebookError: the platform returned an error object
            httpx.HTTPStatusError: non-2xx response without an error object
        """
        start_time = time.time()
        recipient_id = (message.get("recipient") or {}).get("id")

        logfire.info(
            "Sending Facebook message",
            recipient_id=recipient_id,
            api_root=self.api_root,
        )

        async with self._client(self._settings.graph_api_send_timeout_seconds) as client:
            try:
                response = await client.post(
                    "/me/messages",
                    params={ACCESS_TOKEN_PARAM: access_token},
                    json=message,
                )
            except httpx.RequestError as e:
                logfire.error(
                    "Facebook API request error",
                    recipient_id=recipient_id,
                    error=str(e),
                    error_type=type(e).__name__,
                    response_time_ms=(time.time() - start_time) * 1000,
                )
                raise

        elapsed = time.time() - start_time
        try:
            body = response.json()
        except ValueError:
            body = None

        try:
            raise_for_vendor_error(body)
        except FacebookError as e:
            logfire.error(
                "Facebook message send failed",
                recipient_id=recipient_id,
                status_code=response.status_code,
                code=e.code,
                subcode=e.subcode,
                response_time_ms=elapsed * 1000,
            )
            raise

        response.raise_for_status()

        logfire.info(
            "Facebook message sent successfully",
            recipient_id=recipient_id,
            status_code=response.status_code,
            message_id=(body or {}).get("message_id"),
            response_time_ms=elapsed * 1000,
        )
        return body or {}
