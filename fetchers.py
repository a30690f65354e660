"""
Thin proxies over APOD and the Mars rover photo service.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from nasa_client import NASAClient, UpstreamError

logger = logging.getLogger("mission_control.fetchers")


# === APOD ===

async def fetch_apod(client: NASAClient, date: Optional[str] = None) -> Dict[str, Any]:
    """Astronomy Picture of the Day. Upstream errors propagate."""
    params = {"date": date} if date else {}
    return await client.get(client.settings.apod_endpoint, params=params)


# === ROVERS ===

async def fetch_rover_photos(
    client: NASAClient, rover: str, sol: Optional[str] = None
) -> Dict[str, List[Dict[str, Any]]]:
    """Photos for a rover on a sol, or its latest photos when no sol is given.

    Never raises on upstream trouble: an unreachable or malformed feed
    becomes an empty photo list.
    """
    base = f"{client.settings.rover_endpoint}/{rover}"
    if sol:
        endpoint, params, key = f"{base}/photos", {"sol": sol}, "photos"
    else:
        endpoint, params, key = f"{base}/latest_photos", {}, "latest_photos"

    try:
        data = await client.get(endpoint, params=params)
    except UpstreamError as e:
        logger.error(f"Error fetching photos for rover {rover}: {e}")
        return {"photos": []}

    photos = data.get(key, data.get("photos")) if isinstance(data, dict) else None
    if not isinstance(photos, list):
        logger.warning(f"Invalid response structure for rover {rover}")
        return {"photos": []}

    return {"photos": photos}


async def fetch_rover_manifest(client: NASAClient, rover: str) -> Dict[str, Any]:
    """Mission manifest: status, landing date, max sol and date. Errors propagate."""
    return await client.get(f"{client.settings.manifest_endpoint}/{rover}")


def format_photos_response(
    photos: List[Dict[str, Any]],
    sol: Optional[str],
    selected_rover: Optional[str] = None,
) -> Dict[str, Any]:
    """Wrap a photo list with the metadata the dashboard expects."""
    first = photos[0] if photos and isinstance(photos[0], dict) else {}
    response = {
        "photos": photos,
        "total_photos": len(photos),
        "rover": first.get("rover"),
        "sol": sol if sol else "latest",
    }
    if selected_rover is not None:
        response["selected_rover"] = selected_rover
    return response


async def get_most_active_rover(
    client: NASAClient,
    rovers: Optional[Sequence[str]] = None,
    default: Optional[str] = None,
) -> str:
    """The active rover with the most recent photos. Falls back, never raises."""
    settings = client.settings
    rovers = list(rovers or settings.rovers)
    default = default or settings.default_rover

    try:
        results = await asyncio.gather(
            *(fetch_rover_manifest(client, rover) for rover in rovers),
            return_exceptions=True,
        )

        candidates = []
        for rover, result in zip(rovers, results):
            if isinstance(result, BaseException):
                logger.warning(f"Manifest for {rover} unavailable: {result}")
                continue
            manifest = result.get("photo_manifest") if isinstance(result, dict) else None
            if not isinstance(manifest, dict) or manifest.get("status") != "active":
                continue
            candidates.append((rover, str(manifest.get("max_date") or "")))

        if not candidates:
            logger.info(f"No active rovers reported, defaulting to {default}")
            return default

        most_active = candidates[0]
        for candidate in candidates[1:]:
            if candidate[1] > most_active[1]:
                most_active = candidate
        return most_active[0]
    except Exception as e:
        logger.error(f"Error finding most active rover: {e}")
        return default
