"""
Bounce Mission Control Backend API
A steady relay between NASA's open data and the mission dashboard.
Validate, fetch, reshape. Always answer.
"""

from fastapi import APIRouter, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Any, Dict, Optional
from datetime import datetime, timezone
import logging

from config import get_settings
from dashboard import get_multi_planetary_dashboard
from fetchers import (
    fetch_apod,
    fetch_rover_manifest,
    fetch_rover_photos,
    format_photos_response,
    get_most_active_rover,
)
from models import HistoricWeather, WeatherReading
from nasa_client import NASAClient, UpstreamError
from techport import (
    fetch_techport_project,
    fetch_techport_projects,
    filter_projects,
    get_techport_analytics,
    get_techport_categories,
)
from validators import is_non_empty_string, is_valid_date, is_valid_sol
from weather import fetch_current_weather, fetch_historic_weather, simulate_historic_weather

settings = get_settings()

# Configure logging with measured verbosity
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("mission_control")

API_VERSION = "1.0.0"

AVAILABLE_ENDPOINTS = [
    "GET /api/",
    "GET /api/health",
    "GET /api/apod?date=YYYY-MM-DD",
    "GET /api/mars-photos?sol=NUMBER",
    "GET /api/mars-photos/:rover?sol=NUMBER",
    "GET /api/rover-manifest/:rover",
    "GET /api/most-active-rover",
    "GET /api/latest-rover-photos?sol=NUMBER",
    "GET /api/perseverance-weather",
    "GET /api/mars-weather",
    "GET /api/mars-weather/historic",
    "GET /api/mars-weather/simulated",
    "GET /api/multi-planetary-dashboard",
    "GET /api/techport/projects",
    "GET /api/techport/projects/:id",
    "GET /api/techport/categories",
    "GET /api/techport/analytics",
]

# Global client instance
nasa_client = NASAClient(settings)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def error_response(status_code: int, error: str, details: Optional[str] = None, **extra: Any) -> JSONResponse:
    """Every error leaves in the same shape: error, optional details, timestamp."""
    body: Dict[str, Any] = {"error": error}
    if details:
        body["details"] = details
    body.update(extra)
    body["timestamp"] = _now_iso()
    return JSONResponse(status_code=status_code, content=body)


# === FASTAPI APPLICATION ===

app = FastAPI(
    title="Bounce Mission Control API",
    description="NASA open data relay: APOD, Mars rovers, Mars weather, TechPort",
    version=API_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc"
)

# CORS - the dashboard origins, nothing more
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_origin_regex=settings.allowed_origin_regex or None,
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
)

router = APIRouter(prefix="/api")

# === ERROR HANDLING ===


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError):
    """NASA said no. Relay its status, keep its internals."""
    logger.error(f"Upstream failure on {request.url.path}: {exc.message}")
    return error_response(
        exc.status_code or 500,
        exc.message or "Failed to fetch data from NASA API",
        "Unable to retrieve data from NASA API",
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    # The router's own miss carries the stock detail; ours carry a message.
    if exc.status_code == 404 and exc.detail == "Not Found":
        return error_response(404, "Endpoint not found", available_endpoints=AVAILABLE_ENDPOINTS)
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = ", ".join(".".join(str(p) for p in err.get("loc", ())) for err in exc.errors())
    return error_response(400, "Invalid request parameters", fields or None)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    """Log everything, reveal nothing."""
    logger.error(f"Unexpected error on {request.url.path}: {exc}", exc_info=exc)
    return error_response(500, "Internal server error", "An unexpected error occurred")


# === VALIDATION HELPERS ===


def _require_rover(rover: str) -> str:
    normalized = rover.lower()
    if normalized not in settings.rovers:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid rover. Available rovers: {', '.join(settings.rovers)}"
        )
    return normalized


def _optional_sol(sol: Optional[str]) -> Optional[str]:
    """Blank means latest; anything else must be a non-negative integer."""
    if not is_non_empty_string(sol):
        return None
    sol = sol.strip()
    if not is_valid_sol(sol):
        raise HTTPException(
            status_code=400,
            detail="Invalid sol value. Sol must be a non-negative integer."
        )
    return sol


def _optional_int(name: str, value: Optional[str], default: Optional[int] = None) -> Optional[int]:
    if not is_non_empty_string(value):
        return default
    if not is_valid_sol(value.strip()):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid {name} value. {name} must be a non-negative integer."
        )
    return int(value)


# === SYSTEM ===


@app.get("/", tags=["System"])
async def root():
    """API root. Gateway to mission control."""
    return {
        "service": "Bounce Mission Control Backend API",
        "version": API_VERSION,
        "status": "operational",
        "documentation": "/api/docs",
        "health": "/api/health"
    }


@router.get("/", tags=["System"])
async def health_check():
    """Status banner, available rovers, and the map of endpoints."""
    return {
        "message": "Bounce Mission Control Backend API",
        "version": API_VERSION,
        "status": "operational",
        "timestamp": _now_iso(),
        "nasa_api_key": "Using DEMO_KEY" if settings.using_demo_key else "Configured",
        "available_rovers": list(settings.rovers),
        "available_endpoints": AVAILABLE_ENDPOINTS,
    }


@router.get("/health", tags=["System"])
async def upstream_health():
    """Heartbeat including whether NASA answers within the health timeout."""
    reachable = await nasa_client.check_health()
    return {
        "status": "operational",
        "nasa_api": "reachable" if reachable else "unreachable",
        "timestamp": _now_iso(),
    }


# === APOD ===


@router.get("/apod", tags=["APOD"])
async def get_apod(date: Optional[str] = Query(None, description="Date (YYYY-MM-DD)")):
    """Astronomy Picture of the Day, today's or a given date's."""
    if is_non_empty_string(date):
        date = date.strip()
        if not is_valid_date(date):
            raise HTTPException(
                status_code=400,
                detail="Invalid date format. Please use YYYY-MM-DD format."
            )
    else:
        date = None

    return await fetch_apod(nasa_client, date)


# === MARS ROVERS ===


async def _rover_photos(rover: str, sol: Optional[str]) -> Dict[str, Any]:
    try:
        rover_data = await fetch_rover_photos(nasa_client, rover, sol)
        return format_photos_response(rover_data.get("photos") or [], sol)
    except Exception as e:
        logger.error(f"Error fetching Mars rover photos for {rover}: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch Mars rover photos for {rover}. "
                   "The rover may be inactive or data temporarily unavailable."
        )


@router.get("/mars-photos", tags=["Mars Rovers"])
async def get_mars_photos(sol: Optional[str] = Query(None, description="Martian sol")):
    """Photos from the default rover."""
    return await _rover_photos(settings.default_rover, _optional_sol(sol))


@router.get("/mars-photos/{rover}", tags=["Mars Rovers"])
async def get_rover_mars_photos(rover: str, sol: Optional[str] = Query(None, description="Martian sol")):
    """Photos from a named rover."""
    rover = _require_rover(rover)
    return await _rover_photos(rover, _optional_sol(sol))


@router.get("/rover-manifest/{rover}", tags=["Mars Rovers"])
async def get_rover_manifest(rover: str):
    """Mission manifest, passed through as NASA sends it."""
    return await fetch_rover_manifest(nasa_client, _require_rover(rover))


@router.get("/most-active-rover", tags=["Mars Rovers"])
async def most_active_rover():
    rover = await get_most_active_rover(nasa_client)
    return {"most_active_rover": rover, "timestamp": _now_iso()}


@router.get("/latest-rover-photos", tags=["Mars Rovers"])
async def latest_rover_photos(sol: Optional[str] = Query(None, description="Martian sol")):
    """Photos from whichever rover was most recently at work."""
    sol = _optional_sol(sol)
    try:
        rover = await get_most_active_rover(nasa_client)
        rover_data = await fetch_rover_photos(nasa_client, rover, sol)
        return format_photos_response(rover_data.get("photos") or [], sol, selected_rover=rover)
    except Exception as e:
        logger.error(f"Error fetching latest rover photos: {e}")
        raise HTTPException(
            status_code=500,
            detail="Failed to fetch latest rover photos. Data may be temporarily unavailable."
        )


# === MARS WEATHER ===


async def _current_weather(label: str) -> WeatherReading:
    try:
        return await fetch_current_weather(nasa_client)
    except Exception as e:
        logger.error(f"Error fetching {label} weather data: {e}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to fetch {label} weather data. Data may be temporarily unavailable."
        )


@router.get("/perseverance-weather", response_model=WeatherReading, tags=["Mars Weather"])
async def perseverance_weather():
    """Current Mars weather from the best live source, or a simulation."""
    return await _current_weather("Perseverance")


@router.get("/mars-weather", response_model=WeatherReading, tags=["Mars Weather"])
async def mars_weather():
    return await _current_weather("Mars")


def _historic_envelope(history: HistoricWeather) -> Dict[str, Any]:
    return {
        "success": True,
        "data": history.model_dump(),
        "message": "Historic Mars weather data retrieved successfully",
    }


@router.get("/mars-weather/historic", tags=["Mars Weather"])
async def historic_mars_weather():
    """Per-sol series for charts: InSight history when available."""
    return _historic_envelope(await fetch_historic_weather(nasa_client))


@router.get("/mars-weather/simulated", tags=["Mars Weather"])
async def simulated_mars_weather():
    return _historic_envelope(simulate_historic_weather())


# === MULTI-PLANETARY DASHBOARD ===


@router.get("/multi-planetary-dashboard", tags=["Dashboard"])
async def multi_planetary_dashboard():
    try:
        return get_multi_planetary_dashboard()
    except Exception as e:
        logger.error(f"Error building multi-planetary dashboard: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch multi-planetary dashboard data")


# === TECHPORT ===


@router.get("/techport/projects", tags=["TechPort"])
async def techport_projects(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    updatedSince: Optional[str] = Query(None, description="Date (YYYY-MM-DD)"),
    category: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    trl: Optional[str] = Query(None, description="Technology Readiness Level (1-9)"),
):
    """Projects with optional filtering by category, status and TRL."""
    page_number = _optional_int("page", page, default=1)
    page_size = _optional_int("limit", limit, default=100)
    readiness = _optional_int("trl", trl)

    try:
        data = await fetch_techport_projects(
            nasa_client, page=page_number, limit=page_size, updated_since=updatedSince
        )
    except Exception as e:
        logger.error(f"Error fetching TechPort projects: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch or process TechPort projects.")

    data["projects"] = filter_projects(data["projects"], category=category, status=status, trl=readiness)
    return data


@router.get("/techport/projects/{project_id}", tags=["TechPort"])
async def techport_project(project_id: str):
    try:
        project = await fetch_techport_project(nasa_client, project_id)
    except Exception as e:
        logger.error(f"Error fetching TechPort project {project_id}: {e}")
        project = None

    if project is None:
        raise HTTPException(
            status_code=404,
            detail=f"TechPort project {project_id} not found or unavailable."
        )
    return project


@router.get("/techport/categories", tags=["TechPort"])
async def techport_categories():
    try:
        return await get_techport_categories(nasa_client)
    except Exception as e:
        logger.error(f"Error fetching TechPort categories: {e}")
        raise HTTPException(
            status_code=500,
            detail="Failed to fetch TechPort categories. Data may be temporarily unavailable."
        )


@router.get("/techport/analytics", tags=["TechPort"])
async def techport_analytics():
    try:
        return await get_techport_analytics(nasa_client)
    except Exception as e:
        logger.error(f"Error fetching TechPort analytics: {e}")
        raise HTTPException(
            status_code=500,
            detail="Failed to fetch TechPort analytics. Data may be temporarily unavailable."
        )


app.include_router(router)


@app.on_event("startup")
async def startup_event():
    logger.info(f"Mission Control backend starting ({settings.environment})")
    logger.info(f"NASA API key: {'Using DEMO_KEY' if settings.using_demo_key else 'Configured'}")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=settings.environment == "development")
