"""
Weather Service

Current conditions and forecasts from OpenWeatherMap 2.5, with a
match-impact classification.

API Docs: https://openweathermap.org/api
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import httpx

from app.config.settings import settings
from app.domain.match import ImpactLevel, WeatherData
from app.infrastructure.cache import ReadThroughCache, get_cache
from app.infrastructure.exceptions import ProviderError

logger = logging.getLogger(__name__)

CURRENT_TTL = 1800
FORECAST_TTL = 3600

# Malformed bodies surface as ValueError, KeyError or ProviderError
PROVIDER_ERRORS = (httpx.HTTPError, ProviderError, ValueError, KeyError)

WIND_DIRECTIONS = ["N", "NE", "E", "SE", "S", "SW", "W", "NW"]

_SEVERITY = {
    ImpactLevel.NONE: 0,
    ImpactLevel.LOW: 1,
    ImpactLevel.MEDIUM: 2,
    ImpactLevel.HIGH: 3,
}


def wind_direction(degrees: float) -> str:
    """8-point compass direction for a bearing in degrees."""
    return WIND_DIRECTIONS[round(degrees / 45) % 8]


def assess_weather_impact(observation: Dict[str, Any]) -> Tuple[ImpactLevel, str]:
    """
    Classify how much the conditions should affect play.

    Each factor can only raise the level. Temperature in Celsius,
    wind speed in m/s, rain and snow in mm over the last 1h/3h.
    """
    main = observation.get("main") or {}
    temp = main.get("temp", 15)
    wind_speed = (observation.get("wind") or {}).get("speed", 0)
    rain_data = observation.get("rain") or {}
    snow_data = observation.get("snow") or {}
    rain = rain_data.get("1h") or rain_data.get("3h") or 0
    snow = snow_data.get("1h") or snow_data.get("3h") or 0
    conditions = observation.get("weather") or [{}]
    weather_main = (conditions[0].get("main") or "").lower()

    impact = ImpactLevel.NONE
    factors: List[str] = []

    def raise_to(level: ImpactLevel, factor: str) -> None:
        nonlocal impact
        if _SEVERITY[level] > _SEVERITY[impact]:
            impact = level
        factors.append(factor)

    if temp < 0:
        raise_to(ImpactLevel.HIGH, "température glaciale")
    elif temp < 5:
        raise_to(ImpactLevel.MEDIUM, "froid intense")
    elif temp > 35:
        raise_to(ImpactLevel.HIGH, "chaleur extrême")
    elif temp > 30:
        raise_to(ImpactLevel.MEDIUM, "forte chaleur")

    if wind_speed > 15:
        raise_to(ImpactLevel.HIGH, "vent très fort")
    elif wind_speed > 10:
        raise_to(ImpactLevel.MEDIUM, "vent fort")
    elif wind_speed > 6:
        raise_to(ImpactLevel.LOW, "vent modéré")

    if rain > 5 or weather_main == "thunderstorm":
        raise_to(ImpactLevel.HIGH, "fortes pluies")
    elif rain > 2:
        raise_to(ImpactLevel.MEDIUM, "pluie modérée")
    elif rain > 0 or weather_main in ("rain", "drizzle"):
        raise_to(ImpactLevel.LOW, "pluie légère")

    if snow > 0:
        raise_to(ImpactLevel.HIGH, "neige")

    if not factors:
        return impact, "Conditions normales pour jouer"
    return impact, f"Impact: {', '.join(factors)}"


def to_weather_data(observation: Dict[str, Any]) -> WeatherData:
    main = observation.get("main") or {}
    wind = observation.get("wind") or {}
    rain_data = observation.get("rain") or {}
    conditions = observation.get("weather") or [{}]
    impact, impact_description = assess_weather_impact(observation)

    return WeatherData(
        temperature=round(main.get("temp", 0)),
        feels_like=round(main.get("feels_like", main.get("temp", 0))),
        humidity=main.get("humidity", 0),
        wind_speed=round(wind.get("speed", 0) * 3.6),  # m/s -> km/h
        wind_direction=wind_direction(wind["deg"]) if "deg" in wind else None,
        precipitation=rain_data.get("1h") or rain_data.get("3h") or 0.0,
        description=conditions[0].get("description") or "N/A",
        icon=conditions[0].get("icon"),
        impact=impact,
        impact_description=impact_description,
    )


class WeatherService:
    """OpenWeatherMap client. Returns None when unconfigured or on provider errors."""

    BASE_URL = "https://api.openweathermap.org/data/2.5"

    def __init__(
        self,
        cache: Optional[ReadThroughCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = settings.openweather_api_key
        self.timeout = settings.weather_timeout_seconds
        self.cache = cache or get_cache()
        self.transport = transport

    async def _get(self, path: str, city: str) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.get(
                f"{self.BASE_URL}{path}",
                params={
                    "q": city,
                    "appid": self.api_key,
                    "units": "metric",
                    "lang": "fr",
                },
            )
            response.raise_for_status()

        data = response.json()
        if not isinstance(data, dict):
            raise ProviderError(f"Unexpected body from {path}", provider="openweathermap")
        return data

    async def get_current(self, city: str) -> Optional[WeatherData]:
        if not self.api_key:
            logger.warning("[WEATHER] OPENWEATHER_API_KEY not configured")
            return None

        async def fetch():
            return to_weather_data(await self._get("/weather", city))

        try:
            return await self.cache.get_or_fetch(f"weather:{city.lower()}", fetch, CURRENT_TTL)
        except PROVIDER_ERRORS as e:
            logger.warning(f"[WEATHER] Current weather for '{city}' unavailable: {e}")
            return None

    async def get_forecast(self, city: str, kickoff: datetime) -> Optional[WeatherData]:
        """Forecast entry closest to kickoff."""
        if not self.api_key:
            logger.warning("[WEATHER] OPENWEATHER_API_KEY not configured")
            return None

        if kickoff.tzinfo is None:
            kickoff = kickoff.replace(tzinfo=timezone.utc)
        target = kickoff.timestamp()

        async def fetch():
            data = await self._get("/forecast", city)
            entries = data.get("list") or []
            if not entries:
                raise ValueError("empty forecast")
            closest = min(entries, key=lambda entry: abs(entry.get("dt", 0) - target))
            return to_weather_data(closest)

        key = f"weather-forecast:{city.lower()}:{kickoff.isoformat()}"
        try:
            return await self.cache.get_or_fetch(key, fetch, FORECAST_TTL)
        except PROVIDER_ERRORS as e:
            logger.warning(f"[WEATHER] Forecast for '{city}' unavailable: {e}")
            return None

    async def get_match_weather(
        self,
        city: Optional[str],
        date: Optional[str] = None,
        time: Optional[str] = None,
    ) -> Optional[WeatherData]:
        """Forecast when kickoff date and time are known, else current weather."""
        if not city:
            return None

        if date and time:
            try:
                kickoff = datetime.fromisoformat(f"{date}T{time}")
            except ValueError:
                logger.info(f"[WEATHER] Unparseable kickoff '{date} {time}', using current weather")
            else:
                return await self.get_forecast(city, kickoff)

        return await self.get_current(city)


# =============================================================================
# Singleton Instance
# =============================================================================

_weather_service: Optional[WeatherService] = None


def get_weather_service() -> WeatherService:
    """Get or create the weather service singleton."""
    global _weather_service
    if _weather_service is None:
        _weather_service = WeatherService()
    return _weather_service
