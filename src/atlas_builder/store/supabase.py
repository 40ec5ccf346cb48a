"""Supabase builder store using ``httpx``.

Talks to the PostgREST endpoint every Supabase project exposes.  Three
tables are used:

* ``agent_builder_states``: one row per session; ``config``,
  ``validation``, ``preview`` and ``deployment`` are JSONB columns.
* ``agent_templates``: template records with a JSONB ``config``.
* ``agent_deployments``: one row per successful deploy.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from atlas_builder.core.exceptions import (
    BuilderNotFoundError,
    ConflictError,
    PersistenceError,
    TemplateNotFoundError,
)
from atlas_builder.core.types import AgentTemplate, BuilderState, DeploymentRecord
from atlas_builder.store.base import BuilderStore, new_builder_state

logger = structlog.get_logger(__name__)

STATES_TABLE = "agent_builder_states"
TEMPLATES_TABLE = "agent_templates"
DEPLOYMENTS_TABLE = "agent_deployments"


def _state_to_row(state: BuilderState) -> dict[str, Any]:
    data = state.model_dump(mode="json")
    return {
        "id": state.id,
        "owner_id": data["owner_id"],
        "config": data["config"],
        "validation": data["validation"],
        "preview": data["preview"],
        "deployment": data["deployment"],
        "version": data["version"],
        "created_at": data["created_at"],
        "updated_at": data["updated_at"],
    }


def _row_to_state(row: dict[str, Any]) -> BuilderState:
    return BuilderState.model_validate(
        {
            "config": row["config"],
            "validation": row.get("validation") or {},
            "preview": row.get("preview") or {},
            "deployment": row.get("deployment") or {},
            "owner_id": row.get("owner_id") or "",
            "version": row.get("version") or 1,
            "created_at": row.get("created_at"),
            "updated_at": row.get("updated_at"),
        }
    )


class SupabaseBuilderStore(BuilderStore):
    """Supabase (PostgREST) builder store.

    Args:
        url: Supabase project URL (e.g. ``"https://xyzcompany.supabase.co"``).
        api_key: Supabase ``anon`` or ``service_role`` API key.
        timeout: HTTP request timeout in seconds.

    Saves are conditional on the row's ``version`` column: the stored row is
    read first, then patched with a ``version=eq.<n>`` filter.  A patch that
    matches no rows means another writer got there first and raises
    :class:`~atlas_builder.core.exceptions.ConflictError`.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        *,
        timeout: float = 30.0,
    ) -> None:
        self._url = url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    # -- lifecycle ----------------------------------------------------------

    async def connect(self) -> None:
        """Open an ``httpx.AsyncClient`` pointed at the Supabase REST API."""
        self._client = httpx.AsyncClient(
            base_url=f"{self._url}/rest/v1",
            headers={
                "apikey": self._api_key,
                "Authorization": f"Bearer {self._api_key}",
                "Prefer": "return=representation",
            },
            timeout=self._timeout,
        )
        logger.info("supabase.connected", url=self._url)

    async def close(self) -> None:
        """Close the ``httpx.AsyncClient``."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("supabase.closed")

    # -- transport ----------------------------------------------------------

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        """Issue one PostgREST request and return the row list.

        Raises:
            PersistenceError: If not connected, on transport failure, on a
                non-2xx response, or on a body that is not a JSON row list.
        """
        if self._client is None:
            raise PersistenceError("SupabaseBuilderStore not connected. Call connect() first.")

        try:
            resp = await self._client.request(
                method, f"/{table}", params=params, json=json, headers=headers
            )
        except httpx.RequestError as exc:
            raise PersistenceError(
                f"Supabase request failed for {method} {table}: {exc}"
            ) from exc

        if resp.status_code >= 400:
            try:
                err_body: dict[str, Any] = resp.json()
            except ValueError:
                err_body = {"raw": resp.text}
            raise PersistenceError(
                f"Supabase returned HTTP {resp.status_code} for {method} {table}",
                code=str(err_body.get("code") or resp.status_code),
                details=err_body,
                status_code=resp.status_code,
            )

        if resp.status_code == 204 or not resp.content:
            return []
        try:
            data = resp.json()
        except ValueError as exc:
            raise PersistenceError(
                f"Non-JSON response from Supabase for {method} {table}: {resp.text[:200]}"
            ) from exc
        if isinstance(data, dict):
            return [data]
        return list(data)

    async def _fetch_state_row(self, builder_id: str) -> dict[str, Any]:
        rows = await self._request(
            "GET", STATES_TABLE, params={"id": f"eq.{builder_id}", "select": "*"}
        )
        if not rows:
            raise BuilderNotFoundError(f"Builder session '{builder_id}' not found")
        return rows[0]

    # -- builder states -----------------------------------------------------

    async def create(self, owner_id: str) -> BuilderState:
        state = new_builder_state(owner_id)
        rows = await self._request("POST", STATES_TABLE, json=_state_to_row(state))
        logger.info("builder.created", builder_id=state.id, owner_id=owner_id)
        return _row_to_state(rows[0]) if rows else state

    async def load(self, builder_id: str) -> BuilderState:
        return _row_to_state(await self._fetch_state_row(builder_id))

    async def save(
        self, state: BuilderState, *, expected_version: int | None = None
    ) -> BuilderState:
        current = await self._fetch_state_row(state.id)
        stored_version = int(current.get("version") or 1)
        if expected_version is not None and stored_version != expected_version:
            raise ConflictError(
                f"Builder session '{state.id}' was modified concurrently",
                details={
                    "expected_version": expected_version,
                    "stored_version": stored_version,
                },
            )

        row = _state_to_row(state)
        row["version"] = stored_version + 1
        row["updated_at"] = datetime.now(timezone.utc).isoformat()
        row["owner_id"] = current.get("owner_id") or row["owner_id"]
        row.pop("created_at", None)

        rows = await self._request(
            "PATCH",
            STATES_TABLE,
            params={"id": f"eq.{state.id}", "version": f"eq.{stored_version}"},
            json=row,
        )
        if not rows:
            raise ConflictError(
                f"Builder session '{state.id}' was modified concurrently",
                details={"expected_version": stored_version},
            )
        logger.debug("builder.saved", builder_id=state.id, version=row["version"])
        return _row_to_state(rows[0])

    async def delete(self, builder_id: str) -> None:
        await self._request("DELETE", STATES_TABLE, params={"id": f"eq.{builder_id}"})
        logger.info("builder.deleted", builder_id=builder_id)

    # -- templates ----------------------------------------------------------

    async def save_template(self, template: AgentTemplate) -> AgentTemplate:
        rows = await self._request(
            "POST",
            TEMPLATES_TABLE,
            json=template.model_dump(mode="json"),
            headers={"Prefer": "return=representation,resolution=merge-duplicates"},
        )
        return AgentTemplate.model_validate(rows[0]) if rows else template

    async def get_template(self, template_id: str) -> AgentTemplate:
        rows = await self._request(
            "GET", TEMPLATES_TABLE, params={"id": f"eq.{template_id}", "select": "*"}
        )
        if not rows:
            raise TemplateNotFoundError(f"Template '{template_id}' not found")
        return AgentTemplate.model_validate(rows[0])

    async def list_templates(
        self, category: str | None = None, *, public_only: bool = True
    ) -> list[AgentTemplate]:
        params = {"select": "*", "order": "popularity_score.desc"}
        if public_only:
            params["is_public"] = "eq.true"
        if category is not None:
            params["category"] = f"eq.{category}"
        rows = await self._request("GET", TEMPLATES_TABLE, params=params)
        return [AgentTemplate.model_validate(row) for row in rows]

    async def increment_template_usage(self, template_id: str) -> None:
        # Read-then-write: PostgREST has no in-place increment without an RPC.
        template = await self.get_template(template_id)
        await self._request(
            "PATCH",
            TEMPLATES_TABLE,
            params={"id": f"eq.{template_id}"},
            json={
                "usage_count": template.usage_count + 1,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            },
        )

    # -- deployments --------------------------------------------------------

    async def record_deployment(self, record: DeploymentRecord) -> None:
        await self._request(
            "POST", DEPLOYMENTS_TABLE, json=record.model_dump(mode="json")
        )
        logger.info(
            "deployment.recorded",
            deployment_id=record.id,
            builder_id=record.builder_id,
            agent_id=record.agent_id,
        )
