"""
Error taxonomy for the treatment weather engine
"""


class TurfWeatherError(Exception):
    """Base class for all engine errors"""


class UnknownTreatmentType(TurfWeatherError, ValueError):
    """Treatment type has no tolerance profile (caller error, never retried)"""

    def __init__(self, treatment_type: str):
        super().__init__(f"Unknown treatment type: {treatment_type}")
        self.treatment_type = treatment_type


class InvalidWeatherData(TurfWeatherError, ValueError):
    """Weather reading is malformed or outside physical bounds"""


class GatewayUnavailable(TurfWeatherError):
    """Weather data provider could not be reached or returned garbage"""


class NoSuitableWindowFound(TurfWeatherError):
    """No forecast period met the alert threshold"""


class TrainingStoreError(TurfWeatherError):
    """Training-sample store failed to read or write"""
