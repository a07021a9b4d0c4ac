"""Tickspot API client."""

import logging
from datetime import date
from typing import Any
from urllib.parse import urlencode

import httpx

from tikkle.cache import CacheMode, ResponseCache
from tikkle.tickspot.models import (
    TickspotClient,
    TickspotEntry,
    TickspotProject,
    TickspotRole,
    TickspotTask,
)

logger = logging.getLogger(__name__)

PAGE_SIZE = 100
USER_AGENT = "Tikkle"


class TickspotAPI:
    """Client for the Tickspot v2 API."""

    API_DOMAIN = "https://www.tickspot.com"
    API_PATH = "/api/v2"

    def __init__(
        self,
        subscription_id: int,
        api_token: str,
        username: str,
        cache: ResponseCache | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize Tickspot client.

        Args:
            subscription_id: Tickspot subscription (role) ID.
            api_token: Tickspot API token for that subscription.
            username: E-mail address, sent in the User-Agent as Tickspot requires.
            cache: Response cache for hierarchy reads.
            transport: Optional httpx transport, mainly for tests.
        """
        if not api_token:
            raise ValueError("Tickspot API token not provided")

        self.subscription_id = subscription_id
        self.cache = cache or ResponseCache()
        self.client = httpx.Client(
            base_url=f"{self.API_DOMAIN}/{subscription_id}{self.API_PATH}",
            headers={
                "Authorization": f"Token token={api_token}",
                "User-Agent": f"{USER_AGENT} ({username})",
                "Accept": "application/json",
            },
            timeout=30.0,
            transport=transport,
        )

    def _get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        cache_mode: CacheMode = CacheMode.MEMORY,
    ) -> Any:
        key = f"TICKSPOT_{self.subscription_id}_GET{path}"
        if params:
            key += f"?{urlencode(params)}"

        if cache_mode is not CacheMode.NONE and self.cache.has(key, cache_mode):
            return self.cache.get(key, cache_mode)

        response = self.client.get(path, params=params)
        response.raise_for_status()
        data = response.json()

        if cache_mode is not CacheMode.NONE:
            self.cache.set(key, data, cache_mode)
        return data

    def list_clients(self, page: int = 1) -> list[TickspotClient]:
        """List one page of clients.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        data = self._get("/clients.json", {"page": page})
        return [TickspotClient(**item) for item in data]

    def list_all_clients(self) -> list[TickspotClient]:
        """List clients across all pages."""
        clients: list[TickspotClient] = []
        page = 1
        while True:
            batch = self.list_clients(page)
            clients.extend(batch)
            if len(batch) < PAGE_SIZE:
                return clients
            page += 1

    def list_projects(self, page: int = 1) -> list[TickspotProject]:
        """List one page of open projects.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        data = self._get("/projects.json", {"page": page})
        return [TickspotProject(**item) for item in data]

    def list_all_projects(self) -> list[TickspotProject]:
        """List open projects across all pages."""
        projects: list[TickspotProject] = []
        page = 1
        while True:
            batch = self.list_projects(page)
            projects.extend(batch)
            if len(batch) < PAGE_SIZE:
                return projects
            page += 1

    def get_client(self, client_id: int) -> TickspotClient:
        """Get a single client, archived or not."""
        return TickspotClient(**self._get(f"/clients/{client_id}.json"))

    def get_project(self, project_id: int) -> TickspotProject:
        """Get a single project, open or closed."""
        return TickspotProject(**self._get(f"/projects/{project_id}.json"))

    def get_project_tasks(self, project_id: int) -> list[TickspotTask]:
        """Get all tasks of a project, open ones first, then closed ones.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        open_tasks = self._get(f"/projects/{project_id}/tasks.json")
        closed_tasks = self._get(f"/projects/{project_id}/tasks/closed.json")
        return [TickspotTask(**item) for item in [*open_tasks, *closed_tasks]]

    def list_entries(self, start: date, end: date) -> list[TickspotEntry]:
        """List time entries between two days (inclusive), across all pages.

        Entries are never served from the cache.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        entries: list[TickspotEntry] = []
        page = 1
        while True:
            data = self._get(
                "/entries.json",
                {"start_date": start.isoformat(), "end_date": end.isoformat(), "page": page},
                cache_mode=CacheMode.NONE,
            )
            entries.extend(TickspotEntry(**item) for item in data)
            if len(data) < PAGE_SIZE:
                return entries
            page += 1

    def create_entry(self, entry: dict[str, Any]) -> TickspotEntry:
        """Create a time entry.

        Args:
            entry: Payload with date, hours, notes and task_id.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        response = self.client.post("/entries.json", json=entry)
        response.raise_for_status()
        return TickspotEntry(**response.json())

    def update_entry(self, entry_id: int, entry: dict[str, Any]) -> TickspotEntry:
        """Update an existing time entry.

        Args:
            entry_id: Tickspot entry ID.
            entry: Payload with date, hours, notes and task_id.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        response = self.client.put(f"/entries/{entry_id}.json", json=entry)
        response.raise_for_status()
        return TickspotEntry(**response.json())

    @classmethod
    def list_roles(
        cls,
        username: str,
        password: str,
        transport: httpx.BaseTransport | None = None,
    ) -> list[TickspotRole]:
        """List the subscriptions a user can access, authenticating by password.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        with httpx.Client(
            base_url=f"{cls.API_DOMAIN}{cls.API_PATH}",
            headers={"User-Agent": f"{USER_AGENT} ({username})"},
            auth=(username, password),
            timeout=30.0,
            transport=transport,
        ) as client:
            response = client.get("/roles.json")
            response.raise_for_status()
            return [TickspotRole(**item) for item in response.json()]

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> "TickspotAPI":
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()
