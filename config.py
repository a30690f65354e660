"""
Runtime configuration for the Mission Control backend.
Read once from the environment, cached thereafter.
"""

import os
from functools import lru_cache
from typing import List, Tuple

from dotenv import load_dotenv

# A local .env is a convenience for development; real environment wins.
load_dotenv()

ROVERS: Tuple[str, ...] = ("curiosity", "opportunity", "spirit", "perseverance")
DEFAULT_ROVER = "curiosity"


class Settings:
    """Configuration that adapts to environment without complaint."""

    def __init__(self):
        self.nasa_api_key = os.getenv("NASA_API_KEY", "DEMO_KEY")
        self.nasa_base_url = os.getenv("NASA_BASE_URL", "https://api.nasa.gov").rstrip("/")
        self.request_timeout = float(os.getenv("NASA_TIMEOUT", "10"))
        self.health_check_timeout = float(os.getenv("HEALTH_CHECK_TIMEOUT", "5"))

        # Upstream paths on the NASA API host
        self.apod_endpoint = "/planetary/apod"
        self.rover_endpoint = "/mars-photos/api/v1/rovers"
        self.manifest_endpoint = "/mars-photos/api/v1/manifests"
        self.insight_weather_endpoint = "/insight_weather/"
        self.techport_endpoint = "/techport/api/projects"

        # Feeds that live outside api.nasa.gov and take no key
        self.maas_weather_url = os.getenv(
            "MAAS_WEATHER_URL", "http://marsweather.ingenology.com/v1/latest/"
        )
        self.msl_weather_url = os.getenv(
            "MSL_WEATHER_URL",
            "https://mars.nasa.gov/rss/api/?feed=weather&category=msl&feedtype=json",
        )
        self.techport_project_url = os.getenv(
            "TECHPORT_URL", "https://techport.nasa.gov/api/projects"
        ).rstrip("/")

        self.rovers = ROVERS
        self.default_rover = DEFAULT_ROVER

        self.frontend_url = os.getenv("FRONTEND_URL", "http://localhost:5173")
        self.allowed_origin_regex = os.getenv(
            "ALLOWED_ORIGIN_REGEX", r"https://.*\.netlify\.app"
        )
        self.host = os.getenv("HOST", "0.0.0.0")
        self.port = int(os.getenv("PORT", "3000"))
        self.environment = os.getenv("ENVIRONMENT", "development")
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def allowed_origins(self) -> List[str]:
        """Frontend origins permitted by CORS, de-duplicated in order."""
        origins = [
            self.frontend_url,
            "http://localhost:5173",
            "http://localhost:3000",
            "https://localhost:5173",
        ]
        extra = os.getenv("ALLOWED_ORIGINS", "")
        origins.extend(o.strip() for o in extra.split(",") if o.strip())
        return list(dict.fromkeys(o for o in origins if o))

    @property
    def using_demo_key(self) -> bool:
        return self.nasa_api_key == "DEMO_KEY"


@lru_cache()
def get_settings() -> Settings:
    """Single source of truth, cached for efficiency."""
    return Settings()
