"""
Hosted database access over its REST table API.

Every table lives at `<SUPABASE_URL>/rest/v1/<table>`. Rows are filtered
with `column=eq.value` query parameters and written back with
`Prefer: return=representation` so inserts and updates return the stored
row, server-generated id and timestamps included.

One `Database` (and one underlying `httpx.AsyncClient`) exists per
process. No retries and no caching happen here.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from config import Settings

logger = logging.getLogger(__name__)

SINGLE_OBJECT = "application/vnd.pgrst.object+json"

# "JSON object requested, multiple (or no) rows returned"
NO_ROWS = "PGRST116"
# Postgres: invalid text representation (e.g. a malformed uuid in a filter)
INVALID_TEXT = "22P02"


class StorageError(Exception):
    """The hosted database could not be reached or answered unexpectedly."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class ConstraintError(StorageError):
    """A write was rejected by a table constraint (unique, not-null, type)."""


def _error_payload(response: httpx.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {"message": response.text[:200]}
    return body if isinstance(body, dict) else {"message": str(body)[:200]}


class Table:
    def __init__(self, db: "Database", name: str):
        self.db = db
        self.name = name

    def __repr__(self):
        return f"<Table {self.name}>"

    @staticmethod
    def _filters(match: Optional[Dict[str, Any]]) -> Dict[str, str]:
        params = {}
        for column, value in (match or {}).items():
            if isinstance(value, (list, tuple, set)):
                params[column] = "in.(" + ",".join(str(v) for v in value) + ")"
            elif value is None:
                params[column] = "is.null"
            elif isinstance(value, bool):
                params[column] = "eq." + str(value).lower()
            else:
                params[column] = f"eq.{value}"
        return params

    async def select(self, match: Optional[Dict[str, Any]] = None, order: Optional[str] = None,
                     limit: Optional[int] = None) -> List[dict]:
        params = {"select": "*", **self._filters(match)}
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)
        rows = await self.db.request("GET", self.name, params=params)
        return rows or []

    async def select_one(self, match: Dict[str, Any]) -> Optional[dict]:
        params = {"select": "*", **self._filters(match)}
        return await self.db.request("GET", self.name, params=params, single=True)

    async def insert(self, values: Dict[str, Any]) -> dict:
        return await self.db.request(
            "POST", self.name, json=values, single=True, prefer="return=representation", write=True
        )

    async def update(self, match: Dict[str, Any], values: Dict[str, Any]) -> Optional[dict]:
        return await self.db.request(
            "PATCH", self.name, params=self._filters(match), json=values, single=True,
            prefer="return=representation", write=True,
        )

    async def update_many(self, match: Dict[str, Any], values: Dict[str, Any]) -> List[dict]:
        rows = await self.db.request(
            "PATCH", self.name, params=self._filters(match), json=values,
            prefer="return=representation", write=True,
        )
        return rows or []

    async def delete(self, match: Dict[str, Any]) -> List[dict]:
        rows = await self.db.request(
            "DELETE", self.name, params=self._filters(match), prefer="return=representation"
        )
        return rows or []


class Database:
    """Thin async client for the hosted table API, authenticated with the service-role key."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        key = settings.SUPABASE_SERVICE_ROLE_KEY
        self.client = httpx.AsyncClient(
            base_url=settings.rest_url,
            headers={
                "apikey": key,
                "Authorization": f"Bearer {key}",
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    def __getitem__(self, name: str) -> Table:
        return Table(self, name)

    async def close(self):
        await self.client.aclose()

    async def request(self, method: str, table: str, params: Optional[dict] = None, json: Any = None,
                      single: bool = False, prefer: Optional[str] = None, write: bool = False):
        """
        Perform one table call and decode the result.

        With `single=True` the API is asked for exactly one object; "no rows"
        and malformed filter values come back as `None`. Writes that violate
        a constraint raise `ConstraintError`; anything else unexpected raises
        `StorageError`.
        """
        headers = {}
        if single:
            headers["Accept"] = SINGLE_OBJECT
        if prefer:
            headers["Prefer"] = prefer
        try:
            response = await self.client.request(method, f"/{table}", params=params, json=json, headers=headers)
        except httpx.HTTPError as e:
            raise StorageError(f"{method} {table} failed: {e.__class__.__name__}: {e}") from e

        if response.is_success:
            if response.status_code == 204 or not response.content:
                return None
            return response.json()

        payload = _error_payload(response)
        code = payload.get("code")
        message = payload.get("message") or response.reason_phrase

        if code == NO_ROWS and single:
            return None
        if code == INVALID_TEXT and not write:
            return None if single else []
        if write and code and code[:2] in ("22", "23"):
            raise ConstraintError(f"{table}: {message}", response.status_code, code)
        if write and response.status_code == 409:
            raise ConstraintError(f"{table}: {message}", response.status_code, code)
        raise StorageError(f"{method} {table} -> {response.status_code} {code}: {message}",
                           response.status_code, code)

    async def probe(self, table: str) -> bool:
        """True if the table answers a one-row select."""
        try:
            await self[table].select(limit=1)
        except StorageError as e:
            logger.warning("Table %s is not available: %s", table, e)
            return False
        return True
