"""
Supabase backend: PostgREST for table access, GoTrue for the session identity.

Requests carry the project key as `apikey` and either the operator's session
JWT or the key itself as the bearer token, so row-level policies see the
operator's identity whenever a session is bound.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import httpx

from src.config import Settings
from src.kernel.backend.base import DesignBackend, Embed, Row
from src.kernel.backend.errors import classify_postgrest_error, classify_transport_error
from src.kernel.errors import PermissionDenied, SchemaMismatch
from src.logging_config import get_logger

logger = get_logger(__name__)

REST_PATH = "/rest/v1"
AUTH_USER_PATH = "/auth/v1/user"


def build_select(columns: Sequence[str], embeds: Sequence[Embed] = ()) -> str:
    """
    Render a PostgREST `select` parameter.

    build_select(["*"], [OWNER_EMBED]) ->
        "*,user_profile:profiles!user_id(id,email,first_name,last_name,username)"
    """
    parts = [",".join(columns) or "*"]
    for embed in embeds:
        parts.append(f"{embed.alias}:{embed.table}!{embed.foreign_key}({','.join(embed.columns)})")
    return ",".join(parts)


def _filter_value(value: Any) -> str:
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    return f"eq.{value}"


def _json_value(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class PostgrestBackend(DesignBackend):
    """DesignBackend over the Supabase REST API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        access_token: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not base_url:
            raise ValueError("Missing Supabase URL (SUPABASE_URL)")
        if not api_key:
            raise ValueError("Missing Supabase key (SUPABASE_ANON_KEY or SUPABASE_SERVICE_ROLE_KEY)")
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._access_token = access_token
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PostgrestBackend":
        return cls(
            settings.supabase_url,
            settings.supabase_api_key,
            timeout=settings.request_timeout_seconds,
        )

    def bind(self, access_token: Optional[str]) -> "PostgrestBackend":
        return PostgrestBackend(
            self.base_url,
            self._api_key,
            access_token=access_token,
            client=self._client,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._access_token or self._api_key}",
            "Accept": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[List[Tuple[str, str]]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        logger.debug("PostgREST %s %s", method, path, extra={"params": params})
        try:
            response = await self._client.request(
                method,
                self.base_url + path,
                params=params,
                json=json,
                headers=self._headers(headers),
            )
        except httpx.HTTPError as exc:
            error = classify_transport_error(exc)
            logger.warning("Backend request failed: %s", error.message)
            raise error from exc

        if response.is_error:
            try:
                payload = response.json()
            except ValueError:
                payload = response.text
            error = classify_postgrest_error(response.status_code, payload)
            logger.warning(
                "Backend rejected request: %s",
                error.message,
                extra={"status_code": response.status_code, "error_code": error.code},
            )
            raise error

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise SchemaMismatch(f"Backend returned non-JSON body for {path}") from exc

    async def select(
        self,
        table: str,
        *,
        columns: Sequence[str] = ("*",),
        embeds: Sequence[Embed] = (),
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        params: List[Tuple[str, str]] = [("select", build_select(columns, embeds))]
        for column, value in (filters or {}).items():
            params.append((column, _filter_value(value)))
        if order_by:
            params.append(("order", f"{order_by}.{'desc' if descending else 'asc'}"))
        if limit is not None:
            params.append(("limit", str(limit)))

        data = await self._request("GET", f"{REST_PATH}/{table}", params=params)
        if not isinstance(data, list):
            raise SchemaMismatch(f"Expected a list of rows from {table}")
        return data

    async def update(
        self,
        table: str,
        values: Mapping[str, Any],
        *,
        match: Mapping[str, Any],
    ) -> List[Row]:
        if not match:
            raise ValueError("update requires a match predicate")
        params = [(column, _filter_value(value)) for column, value in match.items()]
        body = {key: _json_value(value) for key, value in values.items()}
        data = await self._request(
            "PATCH",
            f"{REST_PATH}/{table}",
            params=params,
            json=body,
            headers={"Prefer": "return=representation", "Content-Type": "application/json"},
        )
        if data is None:
            return []
        if not isinstance(data, list):
            raise SchemaMismatch(f"Expected a list of updated rows from {table}")
        return data

    async def current_identity(self) -> Optional[str]:
        if not self._access_token:
            return None
        data = await self._request("GET", AUTH_USER_PATH)
        user_id = data.get("id") if isinstance(data, dict) else None
        if not user_id:
            raise PermissionDenied("Session token did not resolve to a user")
        return str(user_id)
