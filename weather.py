"""
Mars weather, whatever the feeds are doing.

Sources are tried in order and the first one carrying a reading from the past
year wins. When none qualifies the station is simulated, so a caller always
receives a complete reading.
"""

import logging
import math
import random
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from models import (
    AtmosphericCondition,
    Coordinates,
    EarthDateRange,
    HistoricWeather,
    InSightCompass,
    InSightFeed,
    InSightSensor,
    InSightSol,
    Location,
    MAASReading,
    MissionInfo,
    MSLReading,
    PressurePoint,
    SensorReading,
    SolWeather,
    TemperaturePoint,
    TemperatureReading,
    WeatherReading,
    WindDirection,
    WindPoint,
    WindReading,
)
from nasa_client import NASAClient, UpstreamError

logger = logging.getLogger("mission_control.weather")

# === CONSTANTS ===

COMPASS_DEGREES: Dict[str, float] = {
    "N": 0.0, "NNE": 22.5, "NE": 45.0, "ENE": 67.5,
    "E": 90.0, "ESE": 112.5, "SE": 135.0, "SSE": 157.5,
    "S": 180.0, "SSW": 202.5, "SW": 225.0, "WSW": 247.5,
    "W": 270.0, "WNW": 292.5, "NW": 315.0, "NNW": 337.5,
}
DEFAULT_COMPASS_POINT = "SW"
DEFAULT_WIND_DEGREES = 225.0

# Earth days to sols, as the mission clocks count them here
MARS_DAY_RATIO = 1.027
MARS_YEAR_SOLS = 687

PERSEVERANCE_LANDING = date(2021, 2, 18)
CURIOSITY_LANDING = date(2012, 8, 6)
INSIGHT_LANDING = date(2018, 11, 26)

GALE_CRATER = Coordinates(latitude=-5.4, longitude=137.8)
ELYSIUM_PLANITIA = Coordinates(latitude=4.5024, longitude=135.6234)
JEZERO_CRATER = Coordinates(latitude=18.4447, longitude=77.4508)

DEFAULT_SUNRISE = "06:30"
DEFAULT_SUNSET = "18:45"
DEFAULT_SAMPLE_COUNT = 24
DEFAULT_HUMIDITY = 30.0

SEASONS = [
    "Early Spring", "Late Spring", "Early Summer", "Late Summer",
    "Early Autumn", "Late Autumn", "Early Winter", "Late Winter",
]
HISTORIC_SEASONS = ["Northern Spring", "Northern Summer", "Northern Autumn", "Northern Winter"]
SIMULATED_WIND_DIRECTIONS = ["N", "NE", "E", "SE", "S", "SW", "W", "NW"]

# Day-of-year window in which dust storms become likely
DUST_STORM_SEASON = (60, 150)
CLEAR_SKIES = ["Clear", "Clear", "Clear", "Slightly Hazy", "Hazy"]
DUSTY_SKIES = ["Clear", "Slightly Hazy", "Hazy", "Hazy", "Dusty", "Very Dusty"]

_CLOCK_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})")

# === CONVERSIONS ===


def get_wind_degrees(direction: Optional[str]) -> float:
    """Map a 16-point compass heading to degrees. Unknown headings blow from the SW."""
    if not direction:
        return DEFAULT_WIND_DEGREES
    return COMPASS_DEGREES.get(direction.strip().upper(), DEFAULT_WIND_DEGREES)


def convert_hpa_to_pa(value: float) -> float:
    return value * 100


def day_of_year(day: date) -> int:
    """1 for January 1st."""
    return day.timetuple().tm_yday


def sols_since(landing: date, today: date) -> int:
    days = (today - landing).days
    return max(0, math.floor(days * MARS_DAY_RATIO))


def is_recent(observed: Optional[date], now: datetime) -> bool:
    """A reading counts only if it is newer than one year before now."""
    if observed is None:
        return False
    today = now.date()
    try:
        year_ago = today.replace(year=today.year - 1)
    except ValueError:
        # Feb 29th has no twin in the previous year
        year_ago = today.replace(year=today.year - 1, day=28)
    return observed > year_ago


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _clock(value: Optional[str], default: str) -> str:
    """Upstream times come as 'HH:MM[:SS]' or full ISO datetimes."""
    if not value:
        return default
    match = _CLOCK_PATTERN.match(value)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if hours < 24 and minutes < 60:
            return f"{hours:02d}:{minutes:02d}"
        return default
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%H:%M")
    except ValueError:
        return default


def _hours_to_clock(hours: float) -> str:
    minutes = int(round(hours * 60)) % (24 * 60)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def _value(reading: Optional[float], default: float) -> float:
    return default if reading is None else reading


def _sensor(average: float, minimum: float, maximum: float, count: int = DEFAULT_SAMPLE_COUNT) -> SensorReading:
    """Round to one decimal and order the triple so minimum <= average <= maximum."""
    low, mid, high = sorted((minimum, average, maximum))
    return SensorReading(
        average=round(mid, 1),
        minimum=round(low, 1),
        maximum=round(high, 1),
        count=count,
    )


def _direction(compass_point: Optional[str], degrees: Optional[float] = None) -> WindDirection:
    point = (compass_point or "").strip().upper()
    if point not in COMPASS_DEGREES:
        return WindDirection(compass_point=DEFAULT_COMPASS_POINT, degrees=DEFAULT_WIND_DEGREES)
    return WindDirection(
        compass_point=point,
        degrees=COMPASS_DEGREES[point] if degrees is None else degrees,
    )


def _timestamp(now: datetime) -> str:
    return now.astimezone(timezone.utc).isoformat()


def _build_reading(
    *,
    sol: int,
    terrestrial_date: str,
    air: SensorReading,
    ground: SensorReading,
    pressure: SensorReading,
    wind_speed: SensorReading,
    wind_direction: WindDirection,
    humidity: SensorReading,
    season: str,
    sunrise: str,
    sunset: str,
    uv_index: str,
    opacity: str,
    location: str,
    coordinates: Coordinates,
    now: datetime,
) -> WeatherReading:
    return WeatherReading(
        latest_sol=sol,
        sol_data=SolWeather(
            sol=sol,
            terrestrial_date=terrestrial_date,
            temperature=TemperatureReading(air=air, ground=ground),
            pressure=pressure,
            wind=WindReading(speed=wind_speed, direction=wind_direction),
            humidity=humidity,
            season=season,
            sunrise=sunrise,
            sunset=sunset,
            local_uv_irradiance_index=uv_index,
            atmosphere_opacity=opacity,
        ),
        location=Location(name=location, coordinates=coordinates),
        timestamp=_timestamp(now),
    )


# === SOURCE A: MAAS (current Curiosity REMS) ===


async def fetch_maas_weather(client: NASAClient) -> Optional[MAASReading]:
    try:
        payload = await client.get_external(client.settings.maas_weather_url)
        return MAASReading.from_feed(payload)
    except (UpstreamError, ValueError) as e:
        logger.warning(f"MAAS weather data not available: {e}")
        return None


def maas_latest_date(reading: MAASReading) -> Optional[date]:
    return _parse_date(reading.terrestrial_date)


def convert_maas(reading: MAASReading, now: datetime) -> WeatherReading:
    """Ground-temperature sensor stands in for air; pressure arrives in hPa."""
    min_temp = _value(reading.min_gts_temp, -70.0)
    max_temp = _value(reading.max_gts_temp, -30.0)
    avg_temp = (min_temp + max_temp) / 2

    pressure = convert_hpa_to_pa(_value(reading.pressure, 7.5))
    wind_speed = _value(reading.wind_speed, 5.0)
    opacity = reading.atmo_opacity or "Clear"
    sol = reading.sol if reading.sol is not None and reading.sol >= 0 else 0

    return _build_reading(
        sol=sol,
        terrestrial_date=(maas_latest_date(reading) or now.date()).isoformat(),
        air=_sensor(avg_temp, min_temp, max_temp),
        ground=_sensor(avg_temp + 10, min_temp + 5, max_temp + 15),
        pressure=_sensor(pressure, pressure - 30, pressure + 30),
        wind_speed=_sensor(wind_speed, 0, wind_speed + 10),
        wind_direction=_direction(reading.wind_direction),
        humidity=_sensor(_value(reading.abs_humidity, DEFAULT_HUMIDITY), 0, 100),
        season=reading.season or "Unknown",
        sunrise=_clock(reading.sunrise, DEFAULT_SUNRISE),
        sunset=_clock(reading.sunset, DEFAULT_SUNSET),
        uv_index=reading.local_uv_irradiance_index
        or ("High" if opacity == "Sunny" else "Moderate"),
        opacity=opacity,
        location="Gale Crater (Curiosity REMS - Current Data)",
        coordinates=GALE_CRATER,
        now=now,
    )


# === SOURCE B: InSight (historical lander) ===


async def fetch_insight_weather(client: NASAClient) -> Optional[InSightFeed]:
    settings = client.settings
    try:
        payload = await client.get(
            settings.insight_weather_endpoint,
            params={"feedtype": "json", "ver": "1.0"},
        )
        return InSightFeed.from_feed(payload)
    except (UpstreamError, ValueError) as e:
        logger.warning(f"InSight weather data not available: {e}")
        return None


def insight_latest_date(feed: InSightFeed) -> Optional[date]:
    if not feed.sol_keys:
        return None
    return _parse_date(feed.sols[feed.sol_keys[-1]].First_UTC)


def _latest_insight_sol(feed: InSightFeed) -> Tuple[int, InSightSol]:
    numbered = {int(key): key for key in feed.sol_keys if key.isdigit()}
    if not numbered:
        return 0, feed.sols[feed.sol_keys[-1]]
    sol = max(numbered)
    return sol, feed.sols[numbered[sol]]


def convert_insight(feed: InSightFeed, now: datetime) -> WeatherReading:
    """Pressure is already Pa; the lander measured no humidity."""
    sol, record = _latest_insight_sol(feed)
    at = record.AT or InSightSensor()
    pre = record.PRE or InSightSensor()
    hws = record.HWS or InSightSensor()
    compass = (record.WD.most_common if record.WD else None) or InSightCompass()

    air_avg = _value(at.av, -60.0)
    air_min = _value(at.mn, -80.0)
    air_max = _value(at.mx, -40.0)

    return _build_reading(
        sol=sol,
        terrestrial_date=(_parse_date(record.First_UTC) or now.date()).isoformat(),
        air=_sensor(air_avg, air_min, air_max, at.ct or DEFAULT_SAMPLE_COUNT),
        ground=_sensor(air_avg + 10, air_min + 5, air_max + 15),
        pressure=_sensor(
            _value(pre.av, 700.0), _value(pre.mn, 650.0), _value(pre.mx, 750.0),
            pre.ct or DEFAULT_SAMPLE_COUNT,
        ),
        wind_speed=_sensor(
            _value(hws.av, 5.0), _value(hws.mn, 0.0), _value(hws.mx, 15.0),
            hws.ct or DEFAULT_SAMPLE_COUNT,
        ),
        wind_direction=_direction(compass.compass_point, compass.compass_degrees),
        humidity=_sensor(DEFAULT_HUMIDITY, 0, 100),
        season=record.Season or "Unknown",
        sunrise=DEFAULT_SUNRISE,
        sunset=DEFAULT_SUNSET,
        uv_index="Moderate",
        opacity="Clear",
        location="Elysium Planitia (InSight Historical Data)",
        coordinates=ELYSIUM_PLANITIA,
        now=now,
    )


# === SOURCE C: MSL mission weather service ===


async def fetch_msl_weather(client: NASAClient) -> Optional[MSLReading]:
    try:
        payload = await client.get_external(client.settings.msl_weather_url)
        return MSLReading.from_feed(payload)
    except (UpstreamError, ValueError) as e:
        logger.warning(f"MSL weather data not available: {e}")
        return None


def msl_latest_date(reading: MSLReading) -> Optional[date]:
    return _parse_date(reading.terrestrial_date)


def convert_msl(reading: MSLReading, now: datetime) -> WeatherReading:
    air_min = _value(reading.min_temp, -70.0)
    air_max = _value(reading.max_temp, -30.0)
    ground_min = _value(reading.min_gts_temp, -60.0)
    ground_max = _value(reading.max_gts_temp, -20.0)
    pressure = _value(reading.pressure, 750.0)
    wind_speed = _value(reading.wind_speed, 5.0)

    sol = reading.sol
    if sol is None or sol < 0:
        sol = sols_since(CURIOSITY_LANDING, now.date())

    return _build_reading(
        sol=sol,
        terrestrial_date=(msl_latest_date(reading) or now.date()).isoformat(),
        air=_sensor((air_min + air_max) / 2, air_min, air_max),
        ground=_sensor((ground_min + ground_max) / 2, ground_min, ground_max),
        pressure=_sensor(pressure, pressure - 50, pressure + 50),
        wind_speed=_sensor(wind_speed, 0, wind_speed + 10),
        wind_direction=_direction(reading.wind_direction or reading.wind_direction_compass),
        humidity=_sensor(DEFAULT_HUMIDITY, 0, 100),
        season=reading.season or "Unknown",
        sunrise=_clock(reading.sunrise, DEFAULT_SUNRISE),
        sunset=_clock(reading.sunset, DEFAULT_SUNSET),
        uv_index=reading.local_uv_irradiance_index or "Moderate",
        opacity=reading.atmo_opacity or "Clear",
        location="Gale Crater (MSL/Curiosity Data)",
        coordinates=GALE_CRATER,
        now=now,
    )


# === SIMULATION ===


def simulate_weather(now: Optional[datetime] = None, rng: Optional[random.Random] = None) -> WeatherReading:
    """Plausible Jezero Crater conditions for today. The terminal fallback."""
    now = now or datetime.now(timezone.utc)
    rng = rng or random.Random()
    today = now.date()

    doy = day_of_year(today)
    seasonal = math.sin((doy / 365) * 2 * math.pi)

    air_temp = -20 + seasonal * 15 + rng.uniform(-7.5, 7.5)
    ground_temp = air_temp + rng.uniform(5, 15)
    pressure = 650 + seasonal * 150 + rng.uniform(-25, 25)
    wind_speed = rng.uniform(2, 22)

    heading = rng.randrange(len(SIMULATED_WIND_DIRECTIONS))
    season = SEASONS[min(int((doy / 365) * len(SEASONS)), len(SEASONS) - 1)]

    storm_start, storm_end = DUST_STORM_SEASON
    skies = DUSTY_SKIES if storm_start < doy < storm_end else CLEAR_SKIES
    opacity = rng.choice(skies)

    daylight_shift = seasonal * 1.5
    humidity = rng.uniform(10, 60)

    return _build_reading(
        sol=sols_since(PERSEVERANCE_LANDING, today),
        terrestrial_date=today.isoformat(),
        air=_sensor(air_temp, air_temp - 8, air_temp + 12),
        ground=_sensor(ground_temp, ground_temp - 5, ground_temp + 15),
        pressure=_sensor(pressure, pressure - 30, pressure + 30),
        wind_speed=_sensor(wind_speed, 0, wind_speed + 8),
        wind_direction=WindDirection(
            compass_point=SIMULATED_WIND_DIRECTIONS[heading], degrees=heading * 45
        ),
        humidity=_sensor(humidity, 0, max(humidity, rng.uniform(20, 100))),
        season=season,
        sunrise=_hours_to_clock(6.5 - daylight_shift),
        sunset=_hours_to_clock(18.5 + daylight_shift),
        uv_index="High" if opacity == "Clear" else "Moderate",
        opacity=opacity,
        location="Jezero Crater (Current Simulated Data)",
        coordinates=JEZERO_CRATER,
        now=now,
    )


# === PIPELINE ===


@dataclass(frozen=True)
class WeatherSource:
    """One link of the fallback chain."""
    name: str
    fetch: Callable[[NASAClient], Awaitable[Optional[Any]]]
    latest_date: Callable[[Any], Optional[date]]
    convert: Callable[[Any, datetime], WeatherReading]


WEATHER_SOURCES: List[WeatherSource] = [
    WeatherSource("MAAS", fetch_maas_weather, maas_latest_date, convert_maas),
    WeatherSource("InSight", fetch_insight_weather, insight_latest_date, convert_insight),
    WeatherSource("MSL", fetch_msl_weather, msl_latest_date, convert_msl),
]


async def fetch_current_weather(
    client: NASAClient,
    sources: Optional[Sequence[WeatherSource]] = None,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> WeatherReading:
    """Walk the source chain; simulate when nothing current turns up. Never raises."""
    now = now or datetime.now(timezone.utc)
    chain = WEATHER_SOURCES if sources is None else sources

    try:
        for source in chain:
            payload = await source.fetch(client)
            if payload is None:
                continue

            observed = source.latest_date(payload)
            if not is_recent(observed, now):
                logger.info(f"{source.name} data from {observed or 'an unknown date'} is outdated")
                continue

            logger.info(f"Using {source.name} weather data from {observed}")
            return source.convert(payload, now)
    except Exception as e:
        logger.error(f"Weather source chain failed: {e}", exc_info=True)

    logger.info("No current weather source available, using simulation")
    return simulate_weather(now, rng)


# === HISTORIC SERIES ===


def calculate_data_quality(record: InSightSol) -> int:
    """25 points for each measurement family the sol actually reported."""
    compass = record.WD.most_common if record.WD else None
    present = [
        record.AT is not None and record.AT.av is not None,
        record.PRE is not None and record.PRE.av is not None,
        record.HWS is not None and record.HWS.av is not None,
        compass is not None and bool(compass.compass_point),
    ]
    return 25 * sum(present)


def build_insight_history(feed: InSightFeed) -> HistoricWeather:
    """Chart-ready series from every sol in the InSight feed."""
    first = feed.sols[feed.sol_keys[0]]
    last = feed.sols[feed.sol_keys[-1]]
    start = _parse_date(first.First_UTC) or INSIGHT_LANDING
    end = _parse_date(last.Last_UTC) or date(2022, 12, 15)

    history = HistoricWeather(
        mission_info=MissionInfo(
            name="InSight Mars Lander",
            location="Elysium Planitia",
            coordinates=ELYSIUM_PLANITIA,
            mission_duration=f"Sol {feed.sol_keys[0]} - Sol {feed.sol_keys[-1]}",
            earth_dates=EarthDateRange(start=start.isoformat(), end=end.isoformat()),
            status="Mission Completed",
            total_sols=len(feed.sol_keys),
        )
    )

    for key in feed.sol_keys:
        record = feed.sols[key]
        observed = _parse_date(record.First_UTC)
        if not key.isdigit() or observed is None:
            logger.debug(f"Skipping InSight sol {key}: no usable sol number or date")
            continue

        sol = int(key)
        earth_date = observed.isoformat()
        season = record.Season or "Unknown"
        compass = record.WD.most_common if record.WD else None

        if record.AT:
            at = record.AT
            history.temperature_data.append(TemperaturePoint(
                sol=sol,
                earth_date=earth_date,
                min_temp=at.mn,
                max_temp=at.mx,
                avg_temp=at.av,
                temp_range=at.mx - at.mn if at.mx is not None and at.mn is not None else None,
                season=season,
                sample_count=at.ct or 0,
            ))

        if record.PRE:
            history.pressure_data.append(PressurePoint(
                sol=sol,
                earth_date=earth_date,
                pressure=record.PRE.av,
                pressure_min=record.PRE.mn,
                pressure_max=record.PRE.mx,
                season=season,
                sample_count=record.PRE.ct or 0,
            ))

        if record.HWS or record.WD:
            hws = record.HWS or InSightSensor()
            history.wind_data.append(WindPoint(
                sol=sol,
                earth_date=earth_date,
                season=season,
                wind_speed=hws.av,
                wind_speed_min=hws.mn,
                wind_speed_max=hws.mx,
                wind_speed_samples=hws.ct or 0,
                wind_direction=compass.compass_point if compass else None,
                wind_direction_degrees=compass.compass_degrees if compass else None,
                wind_direction_samples=(compass.ct or 0) if compass else 0,
            ))

        history.atmospheric_conditions.append(AtmosphericCondition(
            sol=sol,
            earth_date=earth_date,
            season=season,
            has_temperature=record.AT is not None,
            has_pressure=record.PRE is not None,
            has_wind_speed=record.HWS is not None,
            has_wind_direction=record.WD is not None,
            data_quality=calculate_data_quality(record),
        ))

    return history


def simulate_historic_weather(
    rng: Optional[random.Random] = None,
    start_sol: int = 10,
    end_sol: int = 800,
) -> HistoricWeather:
    """A simulated station at Elysium Planitia, one record per sol."""
    rng = rng or random.Random()
    landing = datetime.combine(INSIGHT_LANDING, time(), tzinfo=timezone.utc)

    def earth_date(sol: int) -> str:
        return (landing + timedelta(hours=sol * 24.6)).date().isoformat()

    history = HistoricWeather(
        mission_info=MissionInfo(
            name="Simulated Mars Weather Station",
            location="Elysium Planitia (Simulated)",
            coordinates=ELYSIUM_PLANITIA,
            mission_duration=f"Sol {start_sol} - Sol {end_sol}",
            earth_dates=EarthDateRange(start=earth_date(start_sol), end=earth_date(end_sol)),
            status="Simulated Data",
            total_sols=end_sol - start_sol,
        )
    )

    for sol in range(start_sol, end_sol + 1):
        day = earth_date(sol)
        phase = (sol / MARS_YEAR_SOLS) * 2 * math.pi
        season = HISTORIC_SEASONS[int(((sol % MARS_YEAR_SOLS) / MARS_YEAR_SOLS) * len(HISTORIC_SEASONS))]

        avg_temp = -50 + math.sin(phase) * 20 + (rng.random() - 0.5) * 15
        min_temp = avg_temp - 8 - rng.random() * 12
        max_temp = avg_temp + 12 + rng.random() * 15
        pressure = 650 + math.sin(phase + math.pi / 4) * 100 + (rng.random() - 0.5) * 50
        wind_speed = rng.random() * 15 + 2
        heading = rng.randrange(len(SIMULATED_WIND_DIRECTIONS))

        history.temperature_data.append(TemperaturePoint(
            sol=sol,
            earth_date=day,
            min_temp=round(min_temp, 1),
            max_temp=round(max_temp, 1),
            avg_temp=round(avg_temp, 1),
            temp_range=round(max_temp - min_temp, 1),
            season=season,
            sample_count=24 * (18 + rng.randrange(6)),
        ))
        history.pressure_data.append(PressurePoint(
            sol=sol,
            earth_date=day,
            pressure=round(pressure, 1),
            pressure_min=round(pressure - 20, 1),
            pressure_max=round(pressure + 20, 1),
            season=season,
            sample_count=24 * (18 + rng.randrange(6)),
        ))
        history.wind_data.append(WindPoint(
            sol=sol,
            earth_date=day,
            season=season,
            wind_speed=round(wind_speed, 1),
            wind_speed_min=0,
            wind_speed_max=round(wind_speed + 10, 1),
            wind_speed_samples=24 * (15 + rng.randrange(9)),
            wind_direction=SIMULATED_WIND_DIRECTIONS[heading],
            wind_direction_degrees=heading * 45,
        ))
        history.atmospheric_conditions.append(AtmosphericCondition(
            sol=sol,
            earth_date=day,
            season=season,
            has_temperature=True,
            has_pressure=True,
            has_wind_speed=True,
            has_wind_direction=True,
            data_quality=85 + rng.randrange(15),
        ))

    return history


async def fetch_historic_weather(
    client: NASAClient, rng: Optional[random.Random] = None
) -> HistoricWeather:
    """InSight history when the feed answers, a simulated record otherwise."""
    try:
        feed = await fetch_insight_weather(client)
        if feed is not None and feed.sol_keys:
            logger.info("Processing historic data from InSight mission")
            history = build_insight_history(feed)
            if history.atmospheric_conditions:
                return history
    except Exception as e:
        logger.warning(f"Could not process InSight historic data, falling back to simulation: {e}")

    logger.info("Generating simulated historic Mars weather data")
    return simulate_historic_weather(rng)
