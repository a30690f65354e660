from datetime import datetime, timezone

from dashboard import get_multi_planetary_dashboard


def test_dates_are_relative_to_now():
    now = datetime(2025, 1, 1, tzinfo=timezone.utc)
    dashboard = get_multi_planetary_dashboard(now)

    mars = dashboard["planets"][0]
    assert mars["last_activity"]["date"] == "2024-12-30"
    assert mars["last_activity"]["days_ago"] == 2
    assert mars["next_event"]["date"] == "2025-07-15"
    assert mars["next_event"]["days_until"] == 195
    assert mars["data_freshness"]["last_updated"] == now.isoformat()


def test_totals():
    dashboard = get_multi_planetary_dashboard()
    assert len(dashboard["planets"]) == 7
    assert dashboard["total_active_missions"] == 12
    assert dashboard["timestamp"] == dashboard["last_updated"]


def test_image_only_where_known():
    planets = {p["id"]: p for p in get_multi_planetary_dashboard()["planets"]}
    assert "image_url" in planets["mars"]
    assert "image_url" not in planets["moon"]


def test_summaries_do_not_share_state():
    first = get_multi_planetary_dashboard()
    first["planets"][0]["active_missions"][0]["status"] = "lost"
    first["planets"][0]["surface_conditions"]["temperature"]["average"] = 999
    first["planets"][0]["surface_conditions"]["gravity"] = 0
    second = get_multi_planetary_dashboard()
    assert second["planets"][0]["active_missions"][0]["status"] == "active"
    assert second["planets"][0]["surface_conditions"]["temperature"]["average"] == -63
    assert second["planets"][0]["surface_conditions"]["gravity"] == 0.38
