"""
Base Weather Provider - Abstract class for weather data gateways
"""

from abc import ABC, abstractmethod
from typing import List

from ..models import ForecastPoint, Location, WeatherReading


class BaseWeatherProvider(ABC):
    """
    Abstract base class for weather data providers.

    Implementations raise GatewayUnavailable on any failure so callers can
    tell an upstream outage apart from bad input.
    """

    @abstractmethod
    def get_current_weather(self, location: Location) -> WeatherReading:
        """
        Get current conditions

        Args:
            location: Geographic point

        Returns:
            Current weather reading
        """
        pass

    @abstractmethod
    def get_forecast(self, location: Location, days: int = 7) -> List[ForecastPoint]:
        """
        Get weather forecast

        Args:
            location: Geographic point
            days: Number of forecast days

        Returns:
            List of forecast points ordered by date
        """
        pass
