"""External API enrichment capability."""

from typing import Any

import httpx

from enostics_ai.config.schema import ExternalApiConfig
from enostics_ai.tools.base import Tool
from enostics_ai.utils.helpers import now_iso

SUPPORTED_API_TYPES = ("weather", "geolocation")

# WMO weather interpretation codes used by Open-Meteo
WEATHER_CODES = {
    0: "Clear",
    1: "Mainly Clear",
    2: "Partly Cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Fog",
    51: "Drizzle",
    53: "Drizzle",
    55: "Drizzle",
    61: "Rain",
    63: "Rain",
    65: "Heavy Rain",
    71: "Snow",
    73: "Snow",
    75: "Heavy Snow",
    80: "Rain Showers",
    81: "Rain Showers",
    82: "Rain Showers",
    95: "Thunderstorm",
}


class ExternalApiTool(Tool):
    """Dispatch enrichment lookups to a fixed set of integrations."""

    name = "call_external_api"
    description = "Make calls to external APIs for data enrichment"
    parameters = {
        "type": "object",
        "properties": {
            "api_type": {
                "type": "string",
                "enum": list(SUPPORTED_API_TYPES),
                "description": "Type of external API to call",
            },
            "parameters": {
                "type": "object",
                "description": "Parameters for the API call (weather: location or latitude/longitude; geolocation: ip)",
            },
        },
        "required": ["api_type"],
    }

    def __init__(self, config: ExternalApiConfig | None = None):
        self.config = config or ExternalApiConfig()

    async def execute(
        self,
        api_type: str | None = None,
        parameters: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        params = parameters or {}
        try:
            if api_type == "weather":
                return await self._weather(params)
            if api_type == "geolocation":
                return await self._geolocation(params)
        except (httpx.HTTPError, ValueError, KeyError, IndexError, AttributeError, TypeError) as e:
            return {"error": f"External API call failed: {e}"}
        return {"error": f"API type {api_type} not implemented"}

    async def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        async with httpx.AsyncClient(timeout=self.config.timeout_seconds) as client:
            response = await client.get(url, params=params)
            response.raise_for_status()
            return response.json()

    async def _weather(self, params: dict[str, Any]) -> dict[str, Any]:
        location = str(params.get("location") or "").strip()
        latitude = params.get("latitude")
        longitude = params.get("longitude")

        if latitude is None or longitude is None:
            if not location:
                return {"error": "weather requires parameters.location or latitude/longitude"}
            geo = await self._get_json(self.config.geocoding_url, {"name": location, "count": 1})
            results = geo.get("results") or []
            if not results:
                return {"error": f"Unknown location: {location}"}
            latitude = results[0]["latitude"]
            longitude = results[0]["longitude"]
            location = results[0].get("name") or location

        data = await self._get_json(
            self.config.weather_url,
            {
                "latitude": latitude,
                "longitude": longitude,
                "current": "temperature_2m,weather_code",
            },
        )
        current = data.get("current") or {}
        code = current.get("weather_code")
        return {
            "api_type": "weather",
            "location": location or f"{latitude},{longitude}",
            "latitude": latitude,
            "longitude": longitude,
            "temperature": current.get("temperature_2m"),
            "condition": WEATHER_CODES.get(code, "Unknown"),
            "timestamp": now_iso(),
        }

    async def _geolocation(self, params: dict[str, Any]) -> dict[str, Any]:
        ip = str(params.get("ip") or "").strip()
        if not ip:
            return {"error": "geolocation requires parameters.ip"}
        data = await self._get_json(f"{self.config.geolocation_url.rstrip('/')}/{ip}")
        if data.get("status") == "fail":
            return {"error": f"Geolocation lookup failed: {data.get('message', 'unknown error')}", "ip": ip}
        return {
            "api_type": "geolocation",
            "ip": ip,
            "country": data.get("country"),
            "city": data.get("city"),
            "timezone": data.get("timezone"),
            "latitude": data.get("lat"),
            "longitude": data.get("lon"),
        }
