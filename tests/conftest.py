from datetime import datetime, timezone
from typing import Callable

import httpx
import pytest

from config import Settings
from nasa_client import NASAClient


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def make_client(settings: Settings) -> Callable[[Callable[[httpx.Request], httpx.Response]], NASAClient]:
    """Builds a NASAClient whose traffic is answered by the given handler."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> NASAClient:
        return NASAClient(settings, transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def offline_client(make_client) -> NASAClient:
    """A client for which every upstream is unreachable."""

    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("network unreachable", request=request)

    return make_client(refuse)


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def insight_payload() -> dict:
    """Two sols in the shape the InSight feed publishes."""
    return {
        "sol_keys": ["674", "675"],
        "674": {
            "AT": {"av": -62.3, "mn": -96.7, "mx": -15.1, "ct": 177},
            "PRE": {"av": 750.5, "mn": 722.0, "mx": 768.8, "ct": 177},
            "HWS": {"av": 7.2, "mn": 1.1, "mx": 22.5, "ct": 88},
            "WD": {"most_common": {"compass_point": "WNW", "compass_degrees": 292.5, "ct": 20}},
            "First_UTC": "2020-10-19T18:32:20Z",
            "Last_UTC": "2020-10-20T19:11:55Z",
            "Season": "summer",
        },
        "675": {
            "AT": {"av": -60.1, "mn": -95.5, "mx": -10.2, "ct": 160},
            "PRE": {"av": 748.1, "mn": 720.3, "mx": 765.0, "ct": 160},
            "First_UTC": "2020-10-20T19:11:55Z",
            "Last_UTC": "2020-10-21T19:51:31Z",
            "Season": "summer",
        },
        "validity_checks": {"sols_checked": ["674", "675"]},
    }
