"""
Unit tests for the weather impact classification and the OpenWeatherMap client.
"""

import httpx
import pytest

from app.domain.match import ImpactLevel
from app.infrastructure.cache import ReadThroughCache
from app.infrastructure.services.weather_service import (
    WeatherService,
    assess_weather_impact,
    to_weather_data,
    wind_direction,
)


def observation(temp=15, wind=0, rain=None, snow=None, main="Clear"):
    data = {
        "main": {"temp": temp, "feels_like": temp - 1, "humidity": 60},
        "wind": {"speed": wind},
        "weather": [{"main": main, "description": "ciel dégagé", "icon": "01d"}],
    }
    if rain is not None:
        data["rain"] = {"1h": rain}
    if snow is not None:
        data["snow"] = {"1h": snow}
    return data


class TestAssessWeatherImpact:

    def test_normal_conditions(self):
        impact, description = assess_weather_impact(observation())
        assert impact == ImpactLevel.NONE
        assert description == "Conditions normales pour jouer"

    @pytest.mark.parametrize("temp,expected", [
        (-2, ImpactLevel.HIGH),
        (3, ImpactLevel.MEDIUM),
        (5, ImpactLevel.NONE),
        (31, ImpactLevel.MEDIUM),
        (36, ImpactLevel.HIGH),
    ])
    def test_temperature_thresholds(self, temp, expected):
        assert assess_weather_impact(observation(temp=temp))[0] == expected

    @pytest.mark.parametrize("wind,expected", [
        (6, ImpactLevel.NONE),
        (7, ImpactLevel.LOW),
        (11, ImpactLevel.MEDIUM),
        (16, ImpactLevel.HIGH),
    ])
    def test_wind_thresholds(self, wind, expected):
        assert assess_weather_impact(observation(wind=wind))[0] == expected

    def test_thunderstorm_is_high_without_rain_volume(self):
        impact, description = assess_weather_impact(observation(main="Thunderstorm"))
        assert impact == ImpactLevel.HIGH
        assert "fortes pluies" in description

    def test_drizzle_is_low(self):
        assert assess_weather_impact(observation(main="Drizzle"))[0] == ImpactLevel.LOW

    def test_snow_is_high(self):
        assert assess_weather_impact(observation(snow=0.4))[0] == ImpactLevel.HIGH

    def test_later_factor_never_lowers_the_level(self):
        impact, description = assess_weather_impact(observation(temp=-3, rain=0.5))
        assert impact == ImpactLevel.HIGH
        assert description == "Impact: température glaciale, pluie légère"

    def test_missing_sections_use_defaults(self):
        assert assess_weather_impact({}) == (ImpactLevel.NONE, "Conditions normales pour jouer")


class TestWeatherData:

    @pytest.mark.parametrize("degrees,expected", [
        (0, "N"), (44, "NE"), (90, "E"), (180, "S"), (270, "W"), (350, "N"),
    ])
    def test_wind_direction(self, degrees, expected):
        assert wind_direction(degrees) == expected

    def test_conversion(self):
        raw = observation(temp=12.6, rain=1.2)
        raw["wind"] = {"speed": 5, "deg": 225}
        data = to_weather_data(raw)

        assert data.temperature == 13
        assert data.wind_speed == 18
        assert data.wind_direction == "SW"
        assert data.precipitation == 1.2
        assert data.impact == ImpactLevel.LOW
        assert data.description == "ciel dégagé"


class TestWeatherService:

    @staticmethod
    def make_service(response: httpx.Response) -> WeatherService:
        service = WeatherService(
            cache=ReadThroughCache(),
            transport=httpx.MockTransport(lambda request: response),
        )
        service.api_key = "test-key"
        return service

    @pytest.mark.asyncio
    async def test_current_weather(self):
        service = self.make_service(httpx.Response(200, json=observation(temp=8, wind=3)))

        data = await service.get_current("Paris")

        assert data.temperature == 8
        assert data.impact == ImpactLevel.NONE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("response", [
        httpx.Response(200, text="<html>Bad gateway</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(503, json={"message": "down"}),
    ])
    async def test_unusable_response_gives_none(self, response):
        assert await self.make_service(response).get_current("Paris") is None
