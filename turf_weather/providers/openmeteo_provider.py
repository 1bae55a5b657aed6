"""
Open-Meteo Weather Provider - current conditions and hourly forecasts
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from ..errors import GatewayUnavailable
from ..metrics import GATEWAY_REQUEST_DURATION
from ..models import ForecastPoint, Location, WeatherReading
from .base_provider import BaseWeatherProvider

logger = logging.getLogger(__name__)

MAX_FORECAST_DAYS = 16  # Open-Meteo limit

HOURLY_VARIABLES = [
    'temperature_2m',
    'relative_humidity_2m',
    'precipitation',
    'precipitation_probability',
    'weather_code',
    'wind_speed_10m',
    'uv_index',
    'soil_moisture_0_to_1cm',
    'dew_point_2m',
    'surface_pressure',
    'visibility',
    'cloud_cover',
]

CURRENT_VARIABLES = [
    'temperature_2m',
    'relative_humidity_2m',
    'precipitation',
    'weather_code',
    'wind_speed_10m',
    'surface_pressure',
    'cloud_cover',
]

# WMO weather interpretation codes
WEATHER_CODE_CONDITIONS = {
    0: 'Clear',
    1: 'Partly cloudy',
    2: 'Partly cloudy',
    3: 'Cloudy',
    45: 'Fog',
    48: 'Fog',
}


def conditions_from_code(code: Optional[int]) -> str:
    """Map a WMO weather code to a condition string"""
    if code is None:
        return 'Unknown'
    code = int(code)
    if code in WEATHER_CODE_CONDITIONS:
        return WEATHER_CODE_CONDITIONS[code]
    if 51 <= code <= 57:
        return 'Drizzle'
    if 61 <= code <= 67 or 80 <= code <= 82:
        return 'Rain'
    if 71 <= code <= 77 or 85 <= code <= 86:
        return 'Snow'
    if code >= 95:
        return 'Thunderstorm'
    return 'Unknown'


def _scaled(value: Optional[float], factor: float) -> Optional[float]:
    return None if value is None else value * factor


class OpenMeteoProvider(BaseWeatherProvider):
    """Open-Meteo weather data provider"""

    def __init__(self, api_url: str = "https://api.open-meteo.com/v1", timeout: float = 30.0):
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            'User-Agent': 'Turf-Weather-Worker/1.0'
        })

    def _request(self, operation: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.api_url}/forecast"
        try:
            with GATEWAY_REQUEST_DURATION.labels(operation=operation).time():
                response = self.session.get(url, params=params, timeout=self.timeout)
                response.raise_for_status()
                return response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error fetching Open-Meteo {operation}: {e}")
            raise GatewayUnavailable(f"Open-Meteo {operation} request failed: {e}") from e

    def get_current_weather(self, location: Location) -> WeatherReading:
        """
        Get current conditions from Open-Meteo

        Args:
            location: Geographic point

        Returns:
            Current weather reading
        """
        data = self._request('current', {
            'latitude': location.latitude,
            'longitude': location.longitude,
            'timezone': location.timezone,
            'current': CURRENT_VARIABLES,
            'wind_speed_unit': 'kmh',
        })

        current = data.get('current')
        if not isinstance(current, dict):
            raise GatewayUnavailable("Open-Meteo response missing 'current' block")

        try:
            return WeatherReading(
                temperature=float(current['temperature_2m']),
                humidity=float(current['relative_humidity_2m']),
                precipitation=float(current.get('precipitation') or 0.0),
                wind_speed=float(current['wind_speed_10m']),
                conditions=conditions_from_code(current.get('weather_code')),
                pressure=current.get('surface_pressure'),
                cloud_cover=current.get('cloud_cover'),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise GatewayUnavailable(f"Malformed Open-Meteo current conditions: {e}") from e

    def get_forecast(self, location: Location, days: int = 7) -> List[ForecastPoint]:
        """
        Get hourly weather forecast from Open-Meteo

        Args:
            location: Geographic point
            days: Number of forecast days (max 16)

        Returns:
            List of forecast points
        """
        data = self._request('forecast', {
            'latitude': location.latitude,
            'longitude': location.longitude,
            'timezone': location.timezone,
            'forecast_days': max(1, min(days, MAX_FORECAST_DAYS)),
            'hourly': HOURLY_VARIABLES,
            'wind_speed_unit': 'kmh',
        })
        return self._parse_hourly(data, location)

    def _parse_hourly(self, data: Dict[str, Any], location: Location) -> List[ForecastPoint]:
        """
        Parse the hourly block into forecast points

        Args:
            data: Raw API response
            location: Location used to localize naive timestamps

        Returns:
            List of forecast points (malformed hours are skipped)
        """
        hourly = data.get('hourly')
        if not isinstance(hourly, dict) or not hourly.get('time'):
            raise GatewayUnavailable("Open-Meteo response missing hourly forecast")

        tz = location.tzinfo()
        points: List[ForecastPoint] = []

        def column(name: str, i: int) -> Any:
            values = hourly.get(name) or []
            return values[i] if i < len(values) else None

        for i, time_str in enumerate(hourly['time']):
            try:
                date = datetime.fromisoformat(time_str.replace('Z', '+00:00'))
                if date.tzinfo is None:
                    date = date.replace(tzinfo=tz)

                reading = WeatherReading(
                    temperature=float(column('temperature_2m', i)),
                    humidity=float(column('relative_humidity_2m', i)),
                    precipitation=float(column('precipitation', i) or 0.0),
                    wind_speed=float(column('wind_speed_10m', i)),
                    conditions=conditions_from_code(column('weather_code', i)),
                    uv_index=column('uv_index', i),
                    # m³/m³ -> %
                    soil_moisture=_scaled(column('soil_moisture_0_to_1cm', i), 100.0),
                    dew_point=column('dew_point_2m', i),
                    pressure=column('surface_pressure', i),
                    # m -> km
                    visibility=_scaled(column('visibility', i), 0.001),
                    cloud_cover=column('cloud_cover', i),
                )
                points.append(ForecastPoint(
                    date=date,
                    reading=reading,
                    precipitation_probability=float(column('precipitation_probability', i) or 0.0),
                ))
            except (TypeError, ValueError) as e:
                logger.warning(f"Error parsing forecast hour at index {i}: {e}")
                continue

        return points
