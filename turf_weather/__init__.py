"""
Turf Weather - weather-aware decision engine for lawn-care treatments
"""

__version__ = "1.0.0"
