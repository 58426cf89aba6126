"""HTTP client for the OPNsense REST API."""

from __future__ import annotations

import ssl
from typing import Any

import aiohttp

from .core.errors import ClientError, ServerError, TransportError

PATH_GET_RULE = "/api/firewall/filter/getRule/{rule_uuid}"
PATH_SEARCH_RULE = "/api/firewall/filter/searchRule"
PATH_TOGGLE_RULE = "/api/firewall/filter/toggleRule/{rule_uuid}"
PATH_APPLY = "/api/firewall/filter/apply"
PATH_GATEWAY_STATUS = "/api/routes/gateway/status"
PATH_SEARCH_GATEWAY = "/api/routing/settings/searchGateway"


def create_ssl_context(ca_path: str) -> ssl.SSLContext:
    """
    Return a context that trusts the CA bundle at ca_path.

    Reads the file, so call it from an executor. Raises OSError when the
    bundle cannot be read or parsed.
    """
    return ssl.create_default_context(cafile=ca_path)


class OPNsenseApiClient:
    """
    Thin async client for the firewall filter and gateway endpoints.

    Responses with status 2xx are returned, 4xx raise ClientError, 5xx raise
    ServerError and connection level failures raise TransportError. Retrying
    is left to the caller.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        host: str,
        api_key: str,
        api_secret: str,
        request_timeout: float = 15,
        ssl_context: ssl.SSLContext | None = None,
    ) -> None:
        """
        Initialize the client for an appliance reachable at host[:port].

        Without ssl_context, certificate checks follow the session.
        """
        self._session = session
        self._base_url = f"https://{host}"
        self._auth = aiohttp.BasicAuth(api_key, api_secret)
        self._timeout = aiohttp.ClientTimeout(total=request_timeout)
        self._ssl: ssl.SSLContext | bool = True if ssl_context is None else ssl_context

    @property
    def base_url(self) -> str:
        """Return the base URL of the appliance."""
        return self._base_url

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        expect_json: bool = True,
    ) -> Any:
        url = f"{self._base_url}{path}"
        try:
            async with self._session.request(
                method,
                url,
                json=json,
                auth=self._auth,
                timeout=self._timeout,
                ssl=self._ssl,
            ) as resp:
                if resp.status >= 500:  # noqa: PLR2004
                    raise ServerError(resp.status, resp.reason)
                if resp.status >= 400:  # noqa: PLR2004
                    raise ClientError(resp.status, resp.reason)
                if not expect_json:
                    await resp.read()
                    return None
                try:
                    return await resp.json(content_type=None)
                except ValueError as err:
                    raise ClientError(resp.status, "Invalid JSON response") from err
        except (TimeoutError, aiohttp.ClientError) as err:
            msg = f"{method} {path} failed: {str(err) or type(err).__name__}"
            raise TransportError(msg) from err

    async def async_get_rule(self, rule_uuid: str) -> dict[str, Any]:
        """Return a single filter rule."""
        data = await self._request(
            "GET", PATH_GET_RULE.format(rule_uuid=rule_uuid)
        )
        return data if isinstance(data, dict) else {}

    async def async_search_rules(self, search_phrase: str) -> dict[str, Any]:
        """Return filter rules matching the search phrase."""
        data = await self._request(
            "POST",
            PATH_SEARCH_RULE,
            json={
                "current": 1,
                "rowCount": -1,
                "sort": {},
                "searchPhrase": search_phrase,
            },
        )
        return data if isinstance(data, dict) else {}

    async def async_toggle_rule(self, rule_uuid: str) -> None:
        """Flip the enabled flag of a filter rule."""
        await self._request(
            "POST",
            PATH_TOGGLE_RULE.format(rule_uuid=rule_uuid),
            expect_json=False,
        )

    async def async_apply(self) -> None:
        """Apply pending filter changes."""
        await self._request("POST", PATH_APPLY, json={}, expect_json=False)

    async def async_get_gateway_status(self) -> Any:
        """Return the live gateway status listing."""
        return await self._request("GET", PATH_GATEWAY_STATUS)

    async def async_search_gateways(self) -> Any:
        """Return the configured gateway listing."""
        return await self._request("GET", PATH_SEARCH_GATEWAY)
