"""
PostgREST utilities for the site handlers

Provides a small client for the select/insert/update/delete calls the
handlers make against <base>/rest/v1.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote

from site_backend.config import Settings
from site_backend.utils.errors import UpstreamError
from site_backend.utils.http import HttpResponse, send_request

logger = logging.getLogger()


def eq_filter(column: str, value: Any) -> str:
    """PostgREST equality filter, e.g. id=eq.7"""
    return f"{column}=eq.{quote(str(value), safe='')}"


class RestClient:
    """Client for one backing-service project, authenticated with the service key."""

    def __init__(self, settings: Settings):
        self.base_url = settings.rest_url
        self.key = settings.service_key

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self.key,
            "authorization": f"Bearer {self.key}",
            "content-type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def table_url(self, table: str, query: str | None = None) -> str:
        url = f"{self.base_url}/{quote(table, safe='')}"
        return f"{url}?{query}" if query else url

    def _send(
        self, method: str, url: str, error: str, prefer: str | None = None, payload: Any = None
    ) -> HttpResponse:
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        try:
            resp = send_request(method, url, headers=self._headers(prefer), data=data)
        except OSError as e:
            # URLError (DNS, refused connection) and socket timeouts
            logger.error(f"{error}: {e}", exc_info=True)
            raise UpstreamError(error, None, str(getattr(e, "reason", e))) from e

        if not resp.ok:
            logger.error(f"{error}: REST error {resp.status} {resp.text}")
            raise UpstreamError(error, resp.status, resp.text)
        return resp

    def _rows(self, resp: HttpResponse) -> list[dict]:
        rows = resp.json()
        if rows is None:
            return []
        return rows if isinstance(rows, list) else [rows]

    def select(
        self,
        table: str,
        filters: list[str] | None = None,
        columns: str = "*",
        order: list[str] | None = None,
        error: str = "db read failed",
    ) -> list[dict]:
        """
        Fetch rows from a table.

        Args:
            table: Table name
            filters: PostgREST filters such as eq_filter("id", 7)
            columns: select= clause
            order: order= clauses, applied in sequence

        Returns:
            list: Rows (empty list for an empty table)

        Raises:
            UpstreamError: If the REST API returns a non-success status
        """
        parts = [f"select={columns}"]
        parts.extend(filters or [])
        parts.extend(f"order={clause}" for clause in order or [])
        resp = self._send("GET", self.table_url(table, "&".join(parts)), error)
        return self._rows(resp)

    def insert(self, table: str, payload: dict, error: str = "db insert failed") -> dict | None:
        """Insert one row and return its stored representation."""
        resp = self._send(
            "POST", self.table_url(table), error, prefer="return=representation", payload=payload
        )
        rows = self._rows(resp)
        return rows[0] if rows else None

    def update(
        self, table: str, record_id: Any, fields: dict, error: str = "db update failed"
    ) -> dict | None:
        """
        Apply a partial update keyed by id.

        Returns:
            dict: Updated row, or None when no row matched the id
        """
        resp = self._send(
            "PATCH",
            self.table_url(table, eq_filter("id", record_id)),
            error,
            prefer="return=representation",
            payload=fields,
        )
        rows = self._rows(resp)
        return rows[0] if rows else None

    def delete(self, table: str, record_id: Any, error: str = "db delete failed") -> None:
        self._send(
            "DELETE",
            self.table_url(table, eq_filter("id", record_id)),
            error,
            prefer="return=minimal",
        )
