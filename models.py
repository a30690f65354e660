"""
Data shapes for the Mission Control API.
Structure brings clarity: what we return, and what each upstream sends us.
"""

import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

# === CANONICAL WEATHER READING ===


class SensorReading(BaseModel):
    """One sol's summary statistics for a single sensor."""
    average: float
    minimum: float
    maximum: float
    count: int = 24


class TemperatureReading(BaseModel):
    air: SensorReading
    ground: SensorReading


class WindDirection(BaseModel):
    compass_point: str
    degrees: float

    @field_validator("degrees")
    @classmethod
    def degrees_on_compass(cls, v):
        """Keep headings within [0, 360)."""
        return v % 360


class WindReading(BaseModel):
    speed: SensorReading
    direction: WindDirection


class SolWeather(BaseModel):
    sol: int = Field(..., ge=0)
    terrestrial_date: str
    temperature: TemperatureReading
    pressure: SensorReading
    wind: WindReading
    humidity: SensorReading
    season: str
    sunrise: str
    sunset: str
    local_uv_irradiance_index: str
    atmosphere_opacity: str


class Coordinates(BaseModel):
    latitude: float
    longitude: float


class Location(BaseModel):
    name: str
    coordinates: Coordinates


class WeatherReading(BaseModel):
    """Canonical Mars weather reading, whichever source produced it."""
    latest_sol: int = Field(..., ge=0)
    sol_data: SolWeather
    location: Location
    timestamp: str


# === HISTORIC SERIES ===


class TemperaturePoint(BaseModel):
    sol: int
    earth_date: str
    min_temp: Optional[float] = None
    max_temp: Optional[float] = None
    avg_temp: Optional[float] = None
    temp_range: Optional[float] = None
    season: str
    sample_count: int = 0


class PressurePoint(BaseModel):
    sol: int
    earth_date: str
    pressure: Optional[float] = None
    pressure_min: Optional[float] = None
    pressure_max: Optional[float] = None
    season: str
    sample_count: int = 0


class WindPoint(BaseModel):
    sol: int
    earth_date: str
    season: str
    wind_speed: Optional[float] = None
    wind_speed_min: Optional[float] = None
    wind_speed_max: Optional[float] = None
    wind_speed_samples: int = 0
    wind_direction: Optional[str] = None
    wind_direction_degrees: Optional[float] = None
    wind_direction_samples: int = 0


class AtmosphericCondition(BaseModel):
    sol: int
    earth_date: str
    season: str
    has_temperature: bool
    has_pressure: bool
    has_wind_speed: bool
    has_wind_direction: bool
    data_quality: int = Field(..., ge=0, le=100)


class EarthDateRange(BaseModel):
    start: str
    end: str


class MissionInfo(BaseModel):
    name: str
    location: str
    coordinates: Coordinates
    mission_duration: str
    earth_dates: EarthDateRange
    status: str
    total_sols: int


class HistoricWeather(BaseModel):
    """Per-sol series for charting, one list per measurement family."""
    mission_info: MissionInfo
    temperature_data: List[TemperaturePoint] = []
    pressure_data: List[PressurePoint] = []
    wind_data: List[WindPoint] = []
    atmospheric_conditions: List[AtmosphericCondition] = []


# === UPSTREAM PAYLOADS ===
# Every field optional: upstream feeds drift, and defaults belong to the converters.


def _loose_float(v: Any) -> Optional[float]:
    """Feeds write missing numbers as '--', '' or null, and now and then NaN."""
    if v is None or isinstance(v, bool):
        return None
    try:
        number = float(v)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _loose_int(v: Any) -> Optional[int]:
    number = _loose_float(v)
    return int(number) if number is not None else None


class _SolFields(BaseModel):
    """Fields shared by the single-sol Curiosity feeds."""
    sol: Optional[int] = None
    terrestrial_date: Optional[str] = None
    min_temp: Optional[float] = None
    max_temp: Optional[float] = None
    min_gts_temp: Optional[float] = None
    max_gts_temp: Optional[float] = None
    pressure: Optional[float] = None
    wind_speed: Optional[float] = None
    wind_direction: Optional[str] = None
    season: Optional[str] = None
    sunrise: Optional[str] = None
    sunset: Optional[str] = None
    local_uv_irradiance_index: Optional[str] = None
    atmo_opacity: Optional[str] = None

    @field_validator(
        "min_temp", "max_temp", "min_gts_temp", "max_gts_temp",
        "pressure", "wind_speed", mode="before",
    )
    @classmethod
    def numeric_or_missing(cls, v):
        return _loose_float(v)

    @field_validator("sol", mode="before")
    @classmethod
    def sol_or_missing(cls, v):
        return _loose_int(v)

    @field_validator(
        "wind_direction", "season", "sunrise", "sunset",
        "local_uv_irradiance_index", "atmo_opacity", "terrestrial_date",
        mode="before",
    )
    @classmethod
    def text_or_missing(cls, v):
        if not isinstance(v, str) or not v.strip() or v.strip() == "--":
            return None
        return v.strip()


class MAASReading(_SolFields):
    """Latest Curiosity REMS reading as republished by MAAS. Pressure in hPa."""
    abs_humidity: Optional[float] = None

    @field_validator("abs_humidity", mode="before")
    @classmethod
    def humidity_or_missing(cls, v):
        return _loose_float(v)

    @classmethod
    def from_feed(cls, payload: Any) -> "MAASReading":
        """The v1 API wraps the reading in a 'report' object."""
        if isinstance(payload, dict) and isinstance(payload.get("report"), dict):
            payload = payload["report"]
        return cls.model_validate(payload)


class MSLReading(_SolFields):
    """One sol from the mars.nasa.gov MSL weather feed. Pressure in Pa."""
    wind_direction_compass: Optional[str] = None

    @classmethod
    def from_feed(cls, payload: Any) -> "MSLReading":
        """Accept either a flat record or the feed's {'soles': [...]} envelope."""
        if isinstance(payload, dict) and isinstance(payload.get("soles"), list):
            soles = payload["soles"]
            payload = soles[0] if soles else {}
        return cls.model_validate(payload)


class InSightSensor(BaseModel):
    av: Optional[float] = None
    mn: Optional[float] = None
    mx: Optional[float] = None
    ct: Optional[int] = None

    @field_validator("av", "mn", "mx", mode="before")
    @classmethod
    def numeric_or_missing(cls, v):
        return _loose_float(v)

    @field_validator("ct", mode="before")
    @classmethod
    def count_or_missing(cls, v):
        return _loose_int(v)


class InSightCompass(BaseModel):
    compass_point: Optional[str] = None
    compass_degrees: Optional[float] = None
    ct: Optional[int] = None

    @field_validator("compass_degrees", mode="before")
    @classmethod
    def degrees_or_missing(cls, v):
        return _loose_float(v)


class InSightWindDirection(BaseModel):
    most_common: Optional[InSightCompass] = None


class InSightSol(BaseModel):
    AT: Optional[InSightSensor] = None
    PRE: Optional[InSightSensor] = None
    HWS: Optional[InSightSensor] = None
    WD: Optional[InSightWindDirection] = None
    First_UTC: Optional[str] = None
    Last_UTC: Optional[str] = None
    Season: Optional[str] = None


class InSightFeed(BaseModel):
    """The InSight feed: a list of sol keys plus one record per key."""
    sol_keys: List[str] = []
    sols: Dict[str, InSightSol] = {}

    @classmethod
    def from_feed(cls, payload: Any) -> "InSightFeed":
        if not isinstance(payload, dict):
            raise ValueError("InSight feed is not an object")
        keys = [str(k) for k in payload.get("sol_keys") or []]
        sols = {
            key: payload[key]
            for key in keys
            if isinstance(payload.get(key), dict)
        }
        return cls.model_validate({"sol_keys": list(sols), "sols": sols})


# === ERRORS ===


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
    timestamp: str
