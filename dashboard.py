"""
Multi-planetary mission summary.
Mostly fixed knowledge; the dates are computed against today.
"""

import copy
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

_BODIES: List[Dict[str, Any]] = [
    {
        "id": "mars",
        "name": "Mars",
        "type": "planet",
        "active_missions": [
            {"name": "Perseverance Rover", "status": "active", "launch_date": "2020-07-30",
             "arrival_date": "2021-02-18", "mission_type": "rover",
             "description": "Searching for signs of ancient microbial life and collecting rock samples"},
            {"name": "Ingenuity Helicopter", "status": "active", "launch_date": "2020-07-30",
             "arrival_date": "2021-02-18", "mission_type": "rover",
             "description": "First powered flight on another planet"},
            {"name": "Curiosity Rover", "status": "active", "launch_date": "2011-11-26",
             "arrival_date": "2012-08-05", "mission_type": "rover",
             "description": "Assessing Mars past and present habitability"},
            {"name": "MAVEN Orbiter", "status": "active", "launch_date": "2013-11-18",
             "arrival_date": "2014-09-21", "mission_type": "orbiter",
             "description": "Studying Mars atmosphere and climate evolution"},
        ],
        "surface_conditions": {
            "temperature": {"average": -63, "min": -125, "max": 20, "unit": "°C"},
            "atmosphere": {"composition": "95% CO₂, 3% N₂", "pressure": 600, "pressure_unit": "Pa"},
            "gravity": 0.38,
            "day_length": "24h 37m",
            "radiation_level": "high",
        },
        "last_activity": (2, 'Perseverance collected rock sample "Berea"'),
        "next_event": ("2025-07-15", "Sample Return Mission launch window"),
        "notable_fact": "Mars has the largest dust storms in the solar system, which can cover the entire planet.",
        "image_url": "https://science.nasa.gov/wp-content/uploads/2023/10/pia26099-marssimulatedcolor-jpeg.webp",
    },
    {
        "id": "moon",
        "name": "Moon",
        "type": "moon",
        "active_missions": [
            {"name": "Lunar Reconnaissance Orbiter", "status": "active", "launch_date": "2009-06-18",
             "arrival_date": "2009-06-23", "mission_type": "orbiter",
             "description": "High-resolution mapping of the Moon"},
            {"name": "Artemis Program", "status": "planned", "launch_date": "2026-09-01",
             "mission_type": "lander", "description": "Return humans to the Moon"},
        ],
        "surface_conditions": {
            "temperature": {"average": -20, "min": -173, "max": 127, "unit": "°C"},
            "atmosphere": {"composition": "No atmosphere", "pressure": 0, "pressure_unit": "Pa"},
            "gravity": 0.16,
            "day_length": "708 hours",
            "radiation_level": "extreme",
        },
        "last_activity": (7, "LRO captured new images of Apollo landing sites"),
        "next_event": ("2026-09-01", "Artemis III lunar landing"),
        "notable_fact": "The Moon is moving away from Earth at 3.8 cm per year",
    },
    {
        "id": "venus",
        "name": "Venus",
        "type": "planet",
        "active_missions": [
            {"name": "Akatsuki (Venus Climate Orbiter)", "status": "active", "launch_date": "2010-05-20",
             "arrival_date": "2015-12-07", "mission_type": "orbiter",
             "description": "Studying Venus atmosphere and weather"},
        ],
        "surface_conditions": {
            "temperature": {"average": 464, "min": 450, "max": 470, "unit": "°C"},
            "atmosphere": {"composition": "96% CO₂, 3.5% N₂", "pressure": 9200000, "pressure_unit": "Pa"},
            "gravity": 0.91,
            "day_length": "5832 hours",
            "radiation_level": "moderate",
        },
        "last_activity": (30, "Akatsuki observed atmospheric waves"),
        "next_event": ("2029-06-01", "VERITAS mission planned launch"),
        "notable_fact": "Venus rotates backwards and has days longer than its years",
    },
    {
        "id": "europa",
        "name": "Europa",
        "type": "moon",
        "active_missions": [
            {"name": "Europa Clipper", "status": "en-route", "launch_date": "2024-10-14",
             "arrival_date": "2030-04-11", "mission_type": "orbiter",
             "description": "Investigating Europa's subsurface ocean"},
        ],
        "surface_conditions": {
            "temperature": {"average": -160, "min": -220, "max": -130, "unit": "°C"},
            "atmosphere": {"composition": "Thin oxygen atmosphere", "pressure": 0.1, "pressure_unit": "Pa"},
            "gravity": 0.134,
            "day_length": "85 hours",
            "radiation_level": "extreme",
        },
        "last_activity": (45, "Europa Clipper trajectory correction"),
        "next_event": ("2030-04-11", "Europa Clipper arrives at Jupiter system"),
        "notable_fact": "Europa's subsurface ocean may contain more than twice the amount of water of all of Earth's oceans.",
        "image_url": "https://science.nasa.gov/wp-content/uploads/2023/11/europa-5-jpeg.webp",
    },
    {
        "id": "titan",
        "name": "Titan",
        "type": "moon",
        "active_missions": [
            {"name": "Dragonfly", "status": "planned", "launch_date": "2028-07-01",
             "arrival_date": "2034-07-01", "mission_type": "lander",
             "description": "Nuclear-powered rotorcraft to explore Titan's surface"},
        ],
        "surface_conditions": {
            "temperature": {"average": -179, "min": -190, "max": -170, "unit": "°C"},
            "atmosphere": {"composition": "98% N₂, 2% CH₄", "pressure": 146700, "pressure_unit": "Pa"},
            "gravity": 0.14,
            "day_length": "382 hours",
            "radiation_level": "low",
        },
        "last_activity": (60, "Dragonfly mission design review completed"),
        "next_event": ("2028-07-01", "Dragonfly launch"),
        "notable_fact": "Titan is the only moon known to have a dense atmosphere and the only celestial "
                        "body other than Earth with clear evidence of stable bodies of surface liquid.",
        "image_url": "https://science.nasa.gov/wp-content/uploads/2023/08/titan-color-2023.png",
    },
    {
        "id": "asteroid-belt",
        "name": "Asteroid Belt",
        "type": "asteroid",
        "active_missions": [
            {"name": "Dawn (Completed)", "status": "completed", "launch_date": "2007-09-27",
             "arrival_date": "2015-03-06", "mission_type": "orbiter",
             "description": "Studied Vesta and Ceres"},
            {"name": "OSIRIS-REx Sample Analysis", "status": "active", "launch_date": "2016-09-08",
             "arrival_date": "2023-09-24", "mission_type": "sample-return",
             "description": "Analyzing samples from asteroid Bennu"},
        ],
        "surface_conditions": {
            "temperature": {"average": -73, "min": -143, "max": -3, "unit": "°C"},
            "atmosphere": {"composition": "No atmosphere"},
            "gravity": 0.00001,
            "day_length": "Varies by asteroid",
            "radiation_level": "high",
        },
        "last_activity": (14, "OSIRIS-REx sample analysis reveals new findings"),
        "next_event": ("2025-10-01", "Next asteroid sample return mission planning"),
        "notable_fact": "The asteroid belt contains 4% of the Moon's mass",
    },
    {
        "id": "bennu",
        "name": "Bennu",
        "type": "asteroid",
        "active_missions": [
            {"name": "OSIRIS-REx Sample Analysis", "status": "active", "launch_date": "2016-09-08",
             "arrival_date": "2023-09-24", "mission_type": "sample-return",
             "description": "Analyzing samples from asteroid Bennu"},
        ],
        "surface_conditions": {
            "temperature": {"average": -73, "min": -143, "max": -3, "unit": "°C"},
            "atmosphere": {"composition": "No atmosphere"},
            "gravity": 0.00001,
            "day_length": "Varies by asteroid",
            "radiation_level": "high",
        },
        "last_activity": (14, "OSIRIS-REx sample analysis reveals new findings"),
        "next_event": ("2025-10-01", "Next asteroid sample return mission planning"),
        "notable_fact": "Samples returned from Bennu by OSIRIS-REx contain abundant water and carbon, "
                        "key ingredients for life.",
    },
]


def _body_summary(body: Dict[str, Any], today: date, timestamp: str) -> Dict[str, Any]:
    days_ago, activity = body["last_activity"]
    event_date, event = body["next_event"]

    summary = {
        "id": body["id"],
        "name": body["name"],
        "type": body["type"],
        "active_missions": [dict(m) for m in body["active_missions"]],
        "mission_count": len(body["active_missions"]),
        "surface_conditions": copy.deepcopy(body["surface_conditions"]),
        "last_activity": {
            "date": (today - timedelta(days=days_ago)).isoformat(),
            "description": activity,
            "days_ago": days_ago,
        },
        "next_event": {
            "date": event_date,
            "description": event,
            "days_until": (date.fromisoformat(event_date) - today).days,
        },
        "notable_fact": body["notable_fact"],
        "data_freshness": {"last_updated": timestamp, "hours_ago": 0},
    }
    if body.get("image_url"):
        summary["image_url"] = body["image_url"]
    return summary


def get_multi_planetary_dashboard(now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    timestamp = now.isoformat()
    planets = [_body_summary(body, now.date(), timestamp) for body in _BODIES]

    return {
        "planets": planets,
        "total_active_missions": sum(len(p["active_missions"]) for p in planets),
        "timestamp": timestamp,
        "last_updated": timestamp,
    }
