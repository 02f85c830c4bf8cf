"""Airtable client for the project/task board."""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Iterable, Mapping, Sequence

import aiohttp

from ._fields import escape_formula_string, linked_ids
from ._throttle import RequestThrottle
from .const import (
    ALL_STATUSES,
    DEFAULT_PAGE_SIZE,
    DEFAULT_THROTTLE_SECONDS,
    ENV_API_KEY,
    ENV_BASE_ID,
    ENV_MIN_DELAY_MS,
    MAX_BATCH_SIZE,
    MAX_PAGE_SIZE,
    PROJECT_FIELDS,
    PROJECTS_TABLE,
    RECORD_ENDPOINT,
    TABLE_ENDPOINT,
    TASK_FIELDS,
    TASKS_TABLE,
    TEAM_CACHE_TTL_SECONDS,
    TEAM_NAME_FIELD,
    TEAM_TABLE,
)
from .exceptions import (
    ApiConnectionError,
    ApiResponseError,
    AuthenticationError,
    NotFoundError,
    RateLimitError,
    TaskboardError,
)
from .models import Project, Task, TaskMutation, TaskUpdate

_LOGGER = logging.getLogger(__name__)

Params = list[tuple[str, str]]


class TaskboardApiClient:
    """Async client for the Airtable base behind the task board.

    Usage::

        throttle = RequestThrottle()
        async with aiohttp.ClientSession() as session:
            client = TaskboardApiClient(
                session, api_key="pat...", base_id="app...", throttle=throttle
            )
            projects = await client.async_get_projects(status="En progreso")

    Every request goes through ``throttle``. Pass the same throttle to every
    client that targets the same base so they share one rate budget. If no
    throttle is given the client creates a private one.

    If no session is provided, the client creates and manages its own.
    The caller is responsible for calling ``async_close()`` when done
    (or use the client as an async context manager).
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        *,
        api_key: str,
        base_id: str,
        throttle: RequestThrottle | None = None,
        request_interval: float = DEFAULT_THROTTLE_SECONDS,
        projects_table: str = PROJECTS_TABLE,
        tasks_table: str = TASKS_TABLE,
        team_table: str = TEAM_TABLE,
    ) -> None:
        if not api_key:
            raise AuthenticationError("An Airtable API key is required")
        if not base_id:
            raise ValueError("An Airtable base ID is required")
        self._owns_session = session is None
        self._session = session or aiohttp.ClientSession()
        self._api_key = api_key
        self._base_id = base_id
        self._throttle = throttle or RequestThrottle(min_interval=request_interval)
        self._projects_table = projects_table
        self._tasks_table = tasks_table
        self._team_table = team_table
        self._team_names: dict[str, str] | None = None
        self._team_names_expiry = 0.0

    @classmethod
    def from_env(
        cls,
        session: aiohttp.ClientSession | None = None,
        *,
        throttle: RequestThrottle | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> TaskboardApiClient:
        """Build a client from ``AIRTABLE_API_KEY`` / ``AIRTABLE_BASE_ID``.

        ``AIRTABLE_MIN_DELAY_MS`` optionally overrides the request spacing
        when the client creates its own throttle.

        Raises:
            AuthenticationError: If the API key is not set.
            ValueError: If the base ID is not set or the delay is not a number.
        """
        env = os.environ if environ is None else environ
        interval = DEFAULT_THROTTLE_SECONDS
        raw_delay = env.get(ENV_MIN_DELAY_MS)
        if raw_delay:
            interval = float(raw_delay) / 1000
        return cls(
            session,
            api_key=env.get(ENV_API_KEY, ""),
            base_id=env.get(ENV_BASE_ID, ""),
            throttle=throttle,
            request_interval=interval,
        )

    async def __aenter__(self) -> TaskboardApiClient:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.async_close()

    @property
    def throttle(self) -> RequestThrottle:
        return self._throttle

    async def async_close(self) -> None:
        """Close the HTTP session if the client owns it."""
        if self._owns_session:
            await self._session.close()

    # ------------------------------------------------------------------ #
    #  Projects
    # ------------------------------------------------------------------ #

    async def async_get_projects(
        self,
        *,
        search: str | None = None,
        status: str | None = None,
        responsable_id: str | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> list[Project]:
        """Fetch projects, optionally filtered.

        Args:
            search: Case-insensitive match against client or project name.
            status: Manual status to match. ``"all"`` and the Spanish
                "all" labels disable the filter.
            responsable_id: Team member record ID. Airtable formulas cannot
                match linked record IDs, so this filter runs locally.
            page_size: Records per page (Airtable caps this at 100).
        """
        params: Params = [("fields[]", column) for column in PROJECT_FIELDS.values()]
        formula = _project_formula(search, status)
        if formula:
            params.append(("filterByFormula", formula))

        records = await self._list_records(
            self._projects_table, params, page_size=page_size
        )
        projects = [Project.from_record(r) for r in records]

        if responsable_id:
            projects = [p for p in projects if responsable_id in p.responsable_ids]
            _LOGGER.debug(
                "Found %d projects for responsable %s", len(projects), responsable_id
            )
        return projects

    async def async_update_project_status(self, project_id: str, status: str) -> None:
        """Set a project's manual status."""
        await self._update_record(
            self._projects_table, project_id, {PROJECT_FIELDS["status"]: status}
        )

    async def async_update_project_date(
        self, project_id: str, promised_date: str
    ) -> None:
        """Set a project's promised delivery date (``YYYY-MM-DD``)."""
        await self._update_record(
            self._projects_table,
            project_id,
            {PROJECT_FIELDS["promised_date"]: promised_date},
        )

    # ------------------------------------------------------------------ #
    #  Tasks
    # ------------------------------------------------------------------ #

    async def async_get_tasks(self, project_id: str) -> list[Task]:
        """Fetch a project's tasks sorted by their board order.

        Linked record IDs cannot be matched in a formula, so all tasks are
        listed and filtered locally.
        """
        team_names = await self.async_get_team_member_names()
        params: Params = [("fields[]", column) for column in TASK_FIELDS.values()]
        params.append(("sort[0][field]", TASK_FIELDS["order"]))
        params.append(("sort[0][direction]", "asc"))

        records = await self._list_records(self._tasks_table, params)
        return [
            Task.from_record(r, team_names)
            for r in records
            if project_id in linked_ids(r.get("fields", {}).get(TASK_FIELDS["project"]))
        ]

    async def async_get_task(self, task_id: str) -> Task:
        """Fetch a single task.

        Raises:
            NotFoundError: If the task does not exist.
        """
        team_names = await self.async_get_team_member_names()
        record = await self._request("GET", self._record_url(self._tasks_table, task_id))
        return Task.from_record(record, team_names)

    async def async_create_task(self, project_id: str, task: TaskMutation) -> Task:
        """Create a task linked to ``project_id``."""
        body = {"fields": task.to_api_fields(project_id)}
        record = await self._request(
            "POST", self._table_url(self._tasks_table), json_body=body
        )
        return Task.from_record(record)

    async def async_update_task(
        self,
        task_id: str,
        update: TaskUpdate,
        *,
        current: Task | None = None,
    ) -> Task:
        """Apply a partial update to a task.

        Pass ``current`` (the task as last read) to enable start-date
        tracking on status changes; see ``TaskUpdate.to_api_fields``.
        An empty update sends no PATCH and returns the task as it stands.
        """
        if update.is_empty:
            return current if current is not None else await self.async_get_task(task_id)
        record = await self._update_record(
            self._tasks_table, task_id, update.to_api_fields(current)
        )
        return Task.from_record(record)

    async def async_delete_task(self, task_id: str) -> None:
        """Delete a task."""
        await self._request("DELETE", self._record_url(self._tasks_table, task_id))

    async def async_update_tasks_batch(
        self, updates: Sequence[tuple[str, Mapping[str, Any]]]
    ) -> None:
        """Update many tasks, ``MAX_BATCH_SIZE`` records per request.

        Args:
            updates: ``(task_id, fields)`` pairs where ``fields`` uses
                Airtable column names.

        Raises:
            ValueError: If ``updates`` is empty.
        """
        if not updates:
            raise ValueError("At least one update is required")
        url = self._table_url(self._tasks_table)
        for chunk in _chunks(updates, MAX_BATCH_SIZE):
            body = {
                "records": [
                    {"id": task_id, "fields": dict(fields)} for task_id, fields in chunk
                ]
            }
            await self._request("PATCH", url, json_body=body)

    async def async_reorder_tasks(self, orders: Sequence[tuple[str, int]]) -> None:
        """Persist new board positions as ``(task_id, order)`` pairs."""
        for task_id, order in orders:
            if not task_id or isinstance(order, bool) or not isinstance(order, int):
                raise ValueError("Each reorder needs a task ID and an integer order")
        await self.async_update_tasks_batch(
            [(task_id, {TASK_FIELDS["order"]: order}) for task_id, order in orders]
        )

    # ------------------------------------------------------------------ #
    #  Team
    # ------------------------------------------------------------------ #

    async def async_get_team_member_names(self) -> dict[str, str]:
        """Map team member record IDs to display names.

        Cached for ``TEAM_CACHE_TTL_SECONDS``. Names are cosmetic, so a
        failed lookup is logged and yields an empty map instead of failing
        the task listing that needs it.
        """
        now = time.monotonic()
        if self._team_names is not None and now < self._team_names_expiry:
            return self._team_names

        try:
            records = await self._list_records(
                self._team_table, [("fields[]", TEAM_NAME_FIELD)]
            )
        except TaskboardError as err:
            _LOGGER.warning("Could not load team member names: %s", err)
            return {}

        names = {
            r["id"]: r["fields"][TEAM_NAME_FIELD]
            for r in records
            if r.get("fields", {}).get(TEAM_NAME_FIELD)
        }
        self._team_names = names
        self._team_names_expiry = now + TEAM_CACHE_TTL_SECONDS
        return names

    # ------------------------------------------------------------------ #
    #  Internal HTTP layer
    # ------------------------------------------------------------------ #

    def _table_url(self, table: str) -> str:
        return TABLE_ENDPOINT.format(base_id=self._base_id, table=table)

    def _record_url(self, table: str, record_id: str) -> str:
        return RECORD_ENDPOINT.format(
            base_id=self._base_id, table=table, record_id=record_id
        )

    async def _list_records(
        self,
        table: str,
        params: Params,
        *,
        page_size: int = MAX_PAGE_SIZE,
    ) -> list[dict[str, Any]]:
        """List every record of a table, following ``offset`` pagination."""
        url = self._table_url(table)
        size = str(max(1, min(page_size, MAX_PAGE_SIZE)))
        records: list[dict[str, Any]] = []
        offset: str | None = None

        while True:
            page_params = [*params, ("pageSize", size)]
            if offset is not None:
                page_params.append(("offset", offset))

            data = await self._request("GET", url, params=page_params)
            records.extend(data.get("records", []))
            offset = data.get("offset")
            if not offset:
                break

        return records

    async def _update_record(
        self, table: str, record_id: str, fields: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._request(
            "PATCH", self._record_url(table, record_id), json_body={"fields": fields}
        )

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Params | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        """Queue an API request on the throttle and wait for its result.

        Raises:
            AuthenticationError: On 401/403 responses.
            NotFoundError: On 404 responses.
            RateLimitError: On 429 responses.
            ApiResponseError: On other non-2xx responses.
            ApiConnectionError: On network errors.
            QueueCleared: If the throttle was cleared before dispatch.
            QueueFull: If the throttle's queue is bounded and full.
        """
        return await self._throttle.enqueue(
            lambda: self._send(method, url, params=params, json_body=json_body)
        )

    async def _send(
        self,
        method: str,
        url: str,
        *,
        params: Params | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        kwargs: dict[str, Any] = {"headers": headers}
        if params:
            kwargs["params"] = params
        if json_body is not None:
            kwargs["json"] = json_body

        _LOGGER.debug("%s %s", method, url)
        try:
            async with self._session.request(method, url, **kwargs) as resp:
                if resp.status in (401, 403):
                    raise AuthenticationError(f"Authentication failed: HTTP {resp.status}")

                if resp.status == 404:
                    raise NotFoundError(f"Not found: {url}")

                if resp.status == 429:
                    retry_after = resp.headers.get("Retry-After")
                    raise RateLimitError(
                        retry_after=float(retry_after) if retry_after else None,
                    )

                if resp.status == 204:
                    return None

                if resp.status >= 400:
                    body = await resp.text()
                    raise ApiResponseError(
                        f"API error: HTTP {resp.status} - {body}",
                        status_code=resp.status,
                    )

                return await resp.json()

        except aiohttp.ClientError as err:
            raise ApiConnectionError(f"Connection error: {err}") from err


def _project_formula(search: str | None, status: str | None) -> str:
    """Build the ``filterByFormula`` for a project listing."""
    clauses: list[str] = []

    if search and search.strip():
        needle = escape_formula_string(search.strip().lower())
        clauses.append(
            f'OR(SEARCH("{needle}", LOWER({{{PROJECT_FIELDS["client_name"]}}})), '
            f'SEARCH("{needle}", LOWER({{{PROJECT_FIELDS["name"]}}})))'
        )

    if status and status not in ALL_STATUSES:
        clauses.append(
            f'{{{PROJECT_FIELDS["status"]}}} = "{escape_formula_string(status)}"'
        )

    if not clauses:
        return ""
    if len(clauses) == 1:
        return clauses[0]
    return f"AND({', '.join(clauses)})"


def _chunks(items: Sequence[Any], size: int) -> Iterable[Sequence[Any]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]
