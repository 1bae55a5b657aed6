"""
Weather data providers
"""

from .base_provider import BaseWeatherProvider
from .openmeteo_provider import OpenMeteoProvider

__all__ = [
    'BaseWeatherProvider',
    'OpenMeteoProvider',
]
