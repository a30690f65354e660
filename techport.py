"""
NASA TechPort: technology projects, their categories, and simple tallies.
"""

import logging
from typing import Any, Dict, List, Optional

from nasa_client import NASAClient

logger = logging.getLogger("mission_control.techport")

STATUS_BUCKETS = ("active", "completed", "planned")


def _normalize_projects(data: Any) -> Dict[str, Any]:
    """TechPort nests its list one level deep, sometimes two."""
    if not isinstance(data, dict):
        return {"projects": []}

    projects = data.get("projects")
    if isinstance(projects, dict):
        normalized = dict(projects)
        inner = projects.get("projects")
        normalized["projects"] = inner if isinstance(inner, list) else []
        return normalized

    normalized = dict(data)
    normalized["projects"] = projects if isinstance(projects, list) else []
    return normalized


async def fetch_techport_projects(
    client: NASAClient,
    page: int = 1,
    limit: int = 100,
    updated_since: Optional[str] = None,
) -> Dict[str, Any]:
    params: Dict[str, Any] = {"page": page, "limit": limit}
    if updated_since:
        params["updatedSince"] = updated_since
    data = await client.get(client.settings.techport_endpoint, params=params)
    return _normalize_projects(data)


async def fetch_techport_project(client: NASAClient, project_id: str) -> Any:
    url = f"{client.settings.techport_project_url}/{project_id}"
    return await client.get_external(url)


def filter_projects(
    projects: List[Dict[str, Any]],
    category: Optional[str] = None,
    status: Optional[str] = None,
    trl: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Client-side filtering: TechPort's own query options are limited."""
    filtered = [p for p in projects if isinstance(p, dict)]
    if category:
        needle = category.lower()
        filtered = [
            p for p in filtered
            if isinstance(p.get("category"), str) and needle in p["category"].lower()
        ]
    if status:
        wanted = status.lower()
        filtered = [
            p for p in filtered
            if isinstance(p.get("status"), str) and p["status"].lower() == wanted
        ]
    if trl is not None:
        filtered = [p for p in filtered if p.get("trl") == trl]
    return filtered


def _technology_areas(project: Dict[str, Any]) -> List[Dict[str, Any]]:
    areas = project.get("technologyAreas") or []
    return [area for area in areas if isinstance(area, dict)]


async def get_techport_categories(client: NASAClient) -> List[Dict[str, str]]:
    """Every distinct technology area seen across recent projects."""
    response = await fetch_techport_projects(client, limit=500)

    categories: Dict[str, str] = {}
    for project in response["projects"]:
        if not isinstance(project, dict):
            continue
        for area in _technology_areas(project):
            if area.get("code"):
                categories[area["code"]] = area.get("name", "")

    return [{"code": code, "name": name} for code, name in categories.items()]


async def get_techport_analytics(client: NASAClient) -> Dict[str, Any]:
    """Counts by status and by technology area."""
    response = await fetch_techport_projects(client, limit=1000)
    projects = [p for p in response["projects"] if isinstance(p, dict)]

    status_counts = {bucket: 0 for bucket in STATUS_BUCKETS + ("cancelled",)}
    category_counts: Dict[str, int] = {}

    for project in projects:
        status = project.get("status")
        status_counts[status if status in STATUS_BUCKETS else "cancelled"] += 1
        for area in _technology_areas(project):
            name = area.get("name")
            if name:
                category_counts[name] = category_counts.get(name, 0) + 1

    logger.info(f"TechPort analytics computed over {len(projects)} projects")
    return {
        "statusCounts": status_counts,
        "categoryCounts": category_counts,
        "totalProjects": len(projects),
    }
