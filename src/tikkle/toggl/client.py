"""Toggl Track API client."""

import logging
from datetime import datetime
from typing import Any
from urllib.parse import urlencode

import httpx

from tikkle import MARKER
from tikkle.cache import CacheMode, ResponseCache
from tikkle.toggl.models import TogglClient, TogglProject, TogglTimeEntry, TogglWorkspace

logger = logging.getLogger(__name__)

PROJECTS_PER_PAGE = 200


class TogglAPI:
    """Client for the Toggl Track v9 API."""

    BASE_URL = "https://api.track.toggl.com/api/v9"

    def __init__(
        self,
        api_token: str,
        workspace_id: int | None = None,
        cache: ResponseCache | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize Toggl client.

        Args:
            api_token: Toggl API token.
            workspace_id: Workspace holding the mirrored clients and projects.
                Only optional for listing workspaces.
            cache: Response cache for hierarchy reads.
            transport: Optional httpx transport, mainly for tests.
        """
        if not api_token:
            raise ValueError("Toggl API token not provided")

        self.workspace_id = workspace_id
        self.cache = cache or ResponseCache()
        self.client = httpx.Client(
            base_url=self.BASE_URL,
            auth=(api_token, "api_token"),
            timeout=30.0,
            transport=transport,
        )

    @property
    def _workspace(self) -> str:
        if self.workspace_id is None:
            raise ValueError("Toggl workspace not configured")
        return f"/workspaces/{self.workspace_id}"

    def _get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        cache_mode: CacheMode = CacheMode.MEMORY,
    ) -> Any:
        key = f"TOGGL_GET{path}"
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

    def _send(self, method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        response = self.client.request(method, path, json=payload)
        response.raise_for_status()
        # Cached hierarchy reads are stale after any write
        self.cache.discard("TOGGL_")
        if not response.content:
            return None
        return response.json()

    def list_workspaces(self) -> list[TogglWorkspace]:
        """List the workspaces of the authenticated user.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        data = self._get("/me/workspaces", cache_mode=CacheMode.NONE)
        return [TogglWorkspace(**item) for item in data or []]

    def list_clients(self) -> list[TogglClient]:
        """List all clients of the workspace.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        data = self._get(f"{self._workspace}/clients")
        return [TogglClient(**item) for item in data or []]

    def list_client_projects(self, client_id: int) -> list[TogglProject]:
        """List active and archived projects of one client.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        projects: list[TogglProject] = []
        page = 1
        while True:
            data = self._get(
                f"{self._workspace}/projects",
                {
                    "client_ids": client_id,
                    "active": "both",
                    "per_page": PROJECTS_PER_PAGE,
                    "page": page,
                },
            ) or []
            projects.extend(TogglProject(**item) for item in data)
            if len(data) < PROJECTS_PER_PAGE:
                return projects
            page += 1

    def create_client(self, name: str) -> TogglClient:
        """Create a client tagged with the owner marker.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        data = self._send(
            "POST",
            f"{self._workspace}/clients",
            {"name": name, "wid": self.workspace_id, "notes": MARKER},
        )
        return TogglClient(**data)

    def update_client(self, client_id: int, name: str) -> TogglClient:
        """Rename a client.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        data = self._send(
            "PUT",
            f"{self._workspace}/clients/{client_id}",
            {"name": name, "wid": self.workspace_id},
        )
        return TogglClient(**data)

    def delete_client(self, client_id: int) -> None:
        """Delete a client.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        self._send("DELETE", f"{self._workspace}/clients/{client_id}")

    def create_project(self, name: str, client_id: int, active: bool = True) -> TogglProject:
        """Create a project under a client.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        data = self._send(
            "POST",
            f"{self._workspace}/projects",
            {"name": name, "client_id": client_id, "active": active},
        )
        return TogglProject(**data)

    def update_project(self, project_id: int, name: str, active: bool) -> TogglProject:
        """Rename a project and set whether it is active.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        data = self._send(
            "PUT",
            f"{self._workspace}/projects/{project_id}",
            {"name": name, "active": active},
        )
        return TogglProject(**data)

    def delete_project(self, project_id: int) -> None:
        """Delete a project.

        Raises:
            httpx.HTTPError: If API request fails.
        """
        self._send("DELETE", f"{self._workspace}/projects/{project_id}")

    def list_time_entries(self, start: datetime, end: datetime) -> list[TogglTimeEntry]:
        """List the user's time entries between two instants.

        Entries are never served from the cache.

        Args:
            start: Range start (timezone-aware).
            end: Range end (timezone-aware).

        Raises:
            httpx.HTTPError: If API request fails.
        """
        data = self._get(
            "/me/time_entries",
            {"start_date": start.isoformat(), "end_date": end.isoformat()},
            cache_mode=CacheMode.NONE,
        )
        entries = []
        for item in data or []:
            workspace_id = item.get("workspace_id", self.workspace_id)
            if self.workspace_id is not None and workspace_id != self.workspace_id:
                continue
            entries.append(TogglTimeEntry(**item))
        return entries

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> "TogglAPI":
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()
