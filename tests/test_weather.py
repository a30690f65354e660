import random
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock

import httpx
import pytest

from models import InSightFeed, MAASReading, MSLReading, WeatherReading
from weather import (
    CLEAR_SKIES,
    DUSTY_SKIES,
    WeatherSource,
    build_insight_history,
    calculate_data_quality,
    convert_hpa_to_pa,
    convert_insight,
    convert_maas,
    convert_msl,
    day_of_year,
    fetch_current_weather,
    fetch_historic_weather,
    get_wind_degrees,
    insight_latest_date,
    is_recent,
    maas_latest_date,
    msl_latest_date,
    simulate_historic_weather,
    simulate_weather,
    sols_since,
)


def _sensors(reading: WeatherReading):
    data = reading.sol_data
    return [
        data.temperature.air,
        data.temperature.ground,
        data.pressure,
        data.wind.speed,
        data.humidity,
    ]


def _assert_complete(reading: WeatherReading):
    """No nulls anywhere and every sensor ordered."""
    dumped = reading.model_dump()

    def walk(node):
        if isinstance(node, dict):
            for value in node.values():
                walk(value)
        else:
            assert node is not None

    walk(dumped)
    for sensor in _sensors(reading):
        assert sensor.minimum <= sensor.average <= sensor.maximum
    assert 0 <= reading.sol_data.wind.direction.degrees < 360
    assert reading.latest_sol >= 0


class TestConversions:
    def test_compass_table(self):
        assert get_wind_degrees("N") == 0
        assert get_wind_degrees("NE") == 45
        assert get_wind_degrees("nne") == 22.5
        assert get_wind_degrees("NNW") == 337.5

    def test_unknown_direction_defaults_to_southwest(self):
        assert get_wind_degrees("unknown") == 225
        assert get_wind_degrees("") == 225
        assert get_wind_degrees(None) == 225

    def test_hpa_to_pa(self):
        assert convert_hpa_to_pa(7.5) == 750
        assert convert_hpa_to_pa(0) == 0

    def test_day_of_year(self):
        assert day_of_year(date(2023, 1, 1)) == 1
        assert day_of_year(date(2023, 12, 31)) == 365
        assert day_of_year(date(2024, 12, 31)) == 366

    def test_sols_since_landing(self):
        # 1213 Earth days after Perseverance landed
        assert sols_since(date(2021, 2, 18), date(2024, 6, 15)) == 1245
        assert sols_since(date(2021, 2, 18), date(2020, 1, 1)) == 0


class TestRecency:
    def test_within_a_year(self, now):
        assert is_recent(date(2024, 1, 1), now) is True

    def test_exactly_a_year_is_outdated(self, now):
        assert is_recent(date(2023, 6, 15), now) is False
        assert is_recent(date(2019, 1, 1), now) is False

    def test_missing_date_is_outdated(self, now):
        assert is_recent(None, now) is False

    def test_leap_day_now(self):
        leap = datetime(2024, 2, 29, tzinfo=timezone.utc)
        assert is_recent(date(2023, 3, 1), leap) is True
        assert is_recent(date(2023, 2, 28), leap) is False


class TestConverters:
    def test_maas_pressure_is_converted_from_hpa(self, now):
        reading = convert_maas(MAASReading(pressure=7.5, terrestrial_date="2024-06-10"), now)
        assert reading.sol_data.pressure.average == 750
        assert reading.sol_data.pressure.minimum == 720
        assert reading.sol_data.pressure.maximum == 780

    def test_maas_reading(self, now):
        payload = {
            "report": {
                "sol": "4012",
                "terrestrial_date": "2024-06-10",
                "min_gts_temp": -80,
                "max_gts_temp": -5,
                "pressure": 8.1,
                "wind_speed": None,
                "wind_direction": "NE",
                "season": "Month 6",
                "sunrise": "2024-06-10T05:12:00Z",
                "sunset": "17:41",
                "atmo_opacity": "Sunny",
            }
        }
        reading = convert_maas(MAASReading.from_feed(payload), now)

        assert reading.latest_sol == 4012
        assert reading.location.name == "Gale Crater (Curiosity REMS - Current Data)"
        assert reading.sol_data.temperature.air.average == -42.5
        assert reading.sol_data.temperature.ground.maximum == 10
        assert reading.sol_data.pressure.average == 810
        assert reading.sol_data.wind.speed.average == 5
        assert reading.sol_data.wind.direction.compass_point == "NE"
        assert reading.sol_data.wind.direction.degrees == 45
        assert reading.sol_data.sunrise == "05:12"
        assert reading.sol_data.sunset == "17:41"
        assert reading.sol_data.local_uv_irradiance_index == "High"
        assert reading.timestamp.startswith("2024-06-15T12:00:00")
        _assert_complete(reading)

    def test_maas_defaults_fill_every_field(self, now):
        reading = convert_maas(MAASReading(), now)

        assert reading.latest_sol == 0
        assert reading.sol_data.terrestrial_date == "2024-06-15"
        assert reading.sol_data.temperature.air.average == -50
        assert reading.sol_data.pressure.average == 750
        assert reading.sol_data.wind.direction.compass_point == "SW"
        assert reading.sol_data.wind.direction.degrees == 225
        assert reading.sol_data.sunrise == "06:30"
        assert reading.sol_data.sunset == "18:45"
        _assert_complete(reading)

    def test_placeholder_values_count_as_missing(self):
        reading = MAASReading.model_validate({"min_gts_temp": "--", "pressure": "", "season": "--"})
        assert reading.min_gts_temp is None
        assert reading.pressure is None
        assert reading.season is None

    def test_non_finite_numbers_fall_back_to_defaults(self, now, insight_payload):
        maas = convert_maas(
            MAASReading.model_validate({
                "terrestrial_date": "2024-06-10",
                "min_gts_temp": "NaN",
                "max_gts_temp": "-inf",
                "pressure": "Infinity",
                "wind_speed": float("nan"),
            }),
            now,
        )
        assert maas.sol_data.temperature.air.average == -50
        assert maas.sol_data.pressure.average == 750
        _assert_complete(maas)

        msl = convert_msl(
            MSLReading.model_validate({
                "sol": "Infinity",
                "terrestrial_date": "2024-06-10",
                "min_temp": "NaN",
                "max_temp": "Infinity",
                "pressure": "nan",
            }),
            now,
        )
        assert msl.sol_data.temperature.air.maximum == -30
        assert msl.sol_data.pressure.average == 750
        assert msl.latest_sol == sols_since(date(2012, 8, 6), now.date())
        _assert_complete(msl)

        insight_payload["675"]["AT"] = {"av": "NaN", "mn": "-Infinity", "mx": "inf", "ct": 160}
        insight_payload["675"]["WD"] = {"most_common": {"compass_point": "NE", "compass_degrees": "NaN"}}
        insight = convert_insight(InSightFeed.from_feed(insight_payload), now)
        assert insight.sol_data.temperature.air.average == -60
        assert insight.sol_data.wind.direction.degrees == 45
        _assert_complete(insight)

    def test_insight_uses_latest_sol(self, now, insight_payload):
        feed = InSightFeed.from_feed(insight_payload)
        reading = convert_insight(feed, now)

        assert reading.latest_sol == 675
        assert reading.sol_data.terrestrial_date == "2020-10-20"
        assert reading.location.name == "Elysium Planitia (InSight Historical Data)"
        assert reading.sol_data.temperature.air.average == pytest.approx(-60.1)
        assert reading.sol_data.temperature.air.count == 160
        assert reading.sol_data.temperature.ground.average == pytest.approx(-50.1)
        assert reading.sol_data.pressure.average == pytest.approx(748.1)
        # Sol 675 reported no wind
        assert reading.sol_data.wind.speed.average == 5
        assert reading.sol_data.wind.direction.degrees == 225
        assert reading.sol_data.season == "summer"
        _assert_complete(reading)

    def test_insight_ignores_non_sol_keys(self, insight_payload):
        feed = InSightFeed.from_feed(insight_payload)
        assert feed.sol_keys == ["674", "675"]
        assert insight_latest_date(feed) == date(2020, 10, 20)

    def test_msl_feed_envelope(self, now):
        payload = {
            "soles": [
                {
                    "sol": "4000",
                    "terrestrial_date": "2024-06-10",
                    "min_temp": "-75",
                    "max_temp": "-10",
                    "min_gts_temp": "-80",
                    "max_gts_temp": "5",
                    "pressure": "820",
                    "wind_speed": "--",
                    "atmo_opacity": "Sunny",
                    "sunrise": "05:31",
                    "sunset": "17:22",
                },
                {"sol": "3999", "terrestrial_date": "2024-06-09"},
            ]
        }
        reading_in = MSLReading.from_feed(payload)
        assert msl_latest_date(reading_in) == date(2024, 6, 10)

        reading = convert_msl(reading_in, now)
        assert reading.latest_sol == 4000
        assert reading.location.name == "Gale Crater (MSL/Curiosity Data)"
        assert reading.sol_data.temperature.air.average == -42.5
        assert reading.sol_data.temperature.ground.average == -37.5
        # Pa already, no conversion
        assert reading.sol_data.pressure.average == 820
        assert reading.sol_data.wind.speed.average == 5
        assert reading.sol_data.sunrise == "05:31"
        assert reading.sol_data.atmosphere_opacity == "Sunny"
        _assert_complete(reading)

    def test_msl_without_sol_estimates_from_landing(self, now):
        reading = convert_msl(MSLReading(terrestrial_date="2024-06-10"), now)
        assert reading.latest_sol == sols_since(date(2012, 8, 6), now.date())

    def test_inverted_temperatures_are_reordered(self, now):
        reading = convert_msl(MSLReading(min_temp=-10.0, max_temp=-75.0), now)
        air = reading.sol_data.temperature.air
        assert (air.minimum, air.average, air.maximum) == (-75, -42.5, -10)


class TestSimulation:
    def test_reading_is_complete_and_rounded(self, now):
        reading = simulate_weather(now, random.Random(42))

        assert reading.location.name == "Jezero Crater (Current Simulated Data)"
        assert reading.latest_sol == 1245
        assert reading.sol_data.terrestrial_date == "2024-06-15"
        assert reading.sol_data.season == "Late Summer"
        assert reading.sol_data.atmosphere_opacity in CLEAR_SKIES
        for sensor in _sensors(reading):
            for value in (sensor.average, sensor.minimum, sensor.maximum):
                assert round(value, 1) == value
        _assert_complete(reading)

    def test_pressure_follows_the_season(self, now):
        reading = simulate_weather(now, random.Random(7))
        # Mid June sits a quarter of the way up the seasonal swing
        assert 620 < reading.sol_data.pressure.average < 720

    def test_storm_season_draws_dusty_skies(self):
        storm = datetime(2024, 4, 1, tzinfo=timezone.utc)
        rng = random.Random(3)
        labels = {simulate_weather(storm, rng).sol_data.atmosphere_opacity for _ in range(200)}
        assert labels <= set(DUSTY_SKIES)
        assert "Dusty" in labels or "Very Dusty" in labels

    def test_last_day_of_leap_year(self):
        reading = simulate_weather(datetime(2024, 12, 31, tzinfo=timezone.utc), random.Random(1))
        assert reading.sol_data.season == "Late Winter"

    def test_without_arguments(self):
        _assert_complete(simulate_weather())


class TestPipeline:
    @pytest.mark.asyncio
    async def test_total_outage_falls_back_to_simulation(self, offline_client, now):
        reading = await fetch_current_weather(offline_client, now=now, rng=random.Random(0))
        assert reading.location.name == "Jezero Crater (Current Simulated Data)"
        _assert_complete(reading)

    @pytest.mark.asyncio
    async def test_first_recent_source_wins(self, offline_client, now):
        first = WeatherSource(
            "first", AsyncMock(return_value=MAASReading(terrestrial_date="2024-06-01")),
            maas_latest_date, convert_maas,
        )
        second = WeatherSource(
            "second", AsyncMock(return_value=MSLReading(terrestrial_date="2024-06-10")),
            msl_latest_date, convert_msl,
        )
        reading = await fetch_current_weather(offline_client, sources=[first, second], now=now)

        assert reading.location.name == "Gale Crater (Curiosity REMS - Current Data)"
        second.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stale_and_missing_sources_are_skipped(self, offline_client, now):
        stale = WeatherSource(
            "stale", AsyncMock(return_value=MAASReading(terrestrial_date="2020-01-01")),
            maas_latest_date, convert_maas,
        )
        undated = WeatherSource(
            "undated", AsyncMock(return_value=MAASReading()), maas_latest_date, convert_maas,
        )
        missing = WeatherSource("missing", AsyncMock(return_value=None), msl_latest_date, convert_msl)
        fresh = WeatherSource(
            "fresh", AsyncMock(return_value=MSLReading(terrestrial_date="2024-06-10", sol=4000)),
            msl_latest_date, convert_msl,
        )
        reading = await fetch_current_weather(
            offline_client, sources=[stale, undated, missing, fresh], now=now
        )

        assert reading.location.name == "Gale Crater (MSL/Curiosity Data)"
        assert reading.latest_sol == 4000

    @pytest.mark.asyncio
    async def test_raising_source_falls_back_to_simulation(self, offline_client, now):
        broken = WeatherSource(
            "broken", AsyncMock(side_effect=RuntimeError("boom")), maas_latest_date, convert_maas,
        )
        reading = await fetch_current_weather(offline_client, sources=[broken], now=now)
        assert reading.location.name == "Jezero Crater (Current Simulated Data)"

    @pytest.mark.asyncio
    async def test_default_chain_falls_through_to_insight(self, make_client, insight_payload):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.url.host == "marsweather.ingenology.com":
                return httpx.Response(503)
            if request.url.path.startswith("/insight_weather"):
                return httpx.Response(200, json=insight_payload)
            return httpx.Response(500)

        when = datetime(2020, 11, 1, tzinfo=timezone.utc)
        reading = await fetch_current_weather(make_client(handler), now=when)

        assert reading.location.name == "Elysium Planitia (InSight Historical Data)"
        assert reading.latest_sol == 675
        insight_request = requests[1]
        assert "api_key" in insight_request.url.params
        assert insight_request.url.params["feedtype"] == "json"
        # The MSL feed was never needed
        assert len(requests) == 2

    @pytest.mark.asyncio
    async def test_default_chain_reaches_msl(self, make_client, insight_payload, now):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "marsweather.ingenology.com":
                return httpx.Response(200, json={"report": {"terrestrial_date": "2019-01-01"}})
            if request.url.host == "mars.nasa.gov":
                return httpx.Response(
                    200, json={"soles": [{"sol": "4191", "terrestrial_date": "2024-06-12"}]}
                )
            return httpx.Response(200, json=insight_payload)

        reading = await fetch_current_weather(make_client(handler), now=now)

        assert reading.location.name == "Gale Crater (MSL/Curiosity Data)"
        assert reading.latest_sol == 4191

    @pytest.mark.asyncio
    async def test_default_chain_prefers_current_maas(self, make_client, now):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={"report": {"sol": 4195, "terrestrial_date": "2024-06-14", "pressure": 7.5}}
            )

        reading = await fetch_current_weather(make_client(handler), now=now)

        assert reading.location.name == "Gale Crater (Curiosity REMS - Current Data)"
        assert reading.sol_data.pressure.average == 750


class TestHistoric:
    def test_insight_history(self, insight_payload):
        history = build_insight_history(InSightFeed.from_feed(insight_payload))

        assert history.mission_info.name == "InSight Mars Lander"
        assert history.mission_info.mission_duration == "Sol 674 - Sol 675"
        assert history.mission_info.earth_dates.start == "2020-10-19"
        assert history.mission_info.earth_dates.end == "2020-10-21"
        assert history.mission_info.total_sols == 2

        assert [p.sol for p in history.temperature_data] == [674, 675]
        assert history.temperature_data[0].temp_range == pytest.approx(81.6)
        assert history.temperature_data[0].sample_count == 177
        assert len(history.pressure_data) == 2
        assert len(history.wind_data) == 1
        assert history.wind_data[0].wind_direction == "WNW"
        assert [c.data_quality for c in history.atmospheric_conditions] == [100, 50]

    def test_data_quality_counts_present_fields(self, insight_payload):
        feed = InSightFeed.from_feed(insight_payload)
        assert calculate_data_quality(feed.sols["674"]) == 100
        assert calculate_data_quality(feed.sols["675"]) == 50

    def test_simulated_history(self):
        history = simulate_historic_weather(random.Random(1))

        assert history.mission_info.status == "Simulated Data"
        assert history.mission_info.total_sols == 790
        assert history.mission_info.earth_dates.start == "2018-12-06"
        for series in (
            history.temperature_data,
            history.pressure_data,
            history.wind_data,
            history.atmospheric_conditions,
        ):
            assert len(series) == 791
        assert history.temperature_data[0].sol == 10
        assert history.temperature_data[-1].sol == 800
        assert all(85 <= c.data_quality <= 99 for c in history.atmospheric_conditions)
        assert all(
            t.min_temp <= t.avg_temp <= t.max_temp for t in history.temperature_data
        )
        assert {p.season for p in history.pressure_data} <= {
            "Northern Spring", "Northern Summer", "Northern Autumn", "Northern Winter",
        }

    @pytest.mark.asyncio
    async def test_historic_falls_back_when_offline(self, offline_client):
        history = await fetch_historic_weather(offline_client, rng=random.Random(2))
        assert history.mission_info.status == "Simulated Data"

    @pytest.mark.asyncio
    async def test_historic_uses_insight_when_available(self, make_client, insight_payload):
        client = make_client(lambda request: httpx.Response(200, json=insight_payload))
        history = await fetch_historic_weather(client)
        assert history.mission_info.status == "Mission Completed"

    @pytest.mark.asyncio
    async def test_empty_insight_feed_is_simulated(self, make_client):
        client = make_client(lambda request: httpx.Response(200, json={"sol_keys": []}))
        history = await fetch_historic_weather(client)
        assert history.mission_info.status == "Simulated Data"
