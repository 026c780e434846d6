"""Provider abstractions - allow swapping the city search and weather APIs."""
from abc import ABC, abstractmethod
from typing import List

from weather_data import CitySuggestion


class ProviderError(Exception):
    """Base class for failures raised by providers and services."""
    pass


class ValidationError(ProviderError):
    """A required input was missing or blank. Not retryable."""
    pass


class RateLimited(ProviderError):
    """The upstream API throttled the request. Retryable by the caller."""
    pass


class UpstreamError(ProviderError):
    """The upstream API failed or returned a malformed response."""
    pass


class NotFound(UpstreamError):
    """The upstream API does not know the requested city."""
    pass


class ConfigurationError(UpstreamError):
    """A required API key is missing from the environment."""
    pass


class CitySearchProviderBase(ABC):
    """Abstract base class for city autocomplete sources."""

    @abstractmethod
    def search(self, query: str) -> List[CitySuggestion]:
        """
        Search cities whose name starts with ``query``.

        Returns:
            List[CitySuggestion]: At most a handful of suggestions, most populous first

        Raises:
            RateLimited: If the upstream API throttled the request
            UpstreamError: For any other failure
        """
        pass


class WeatherProviderBase(ABC):
    """Abstract base class for weather data providers."""

    @abstractmethod
    def get_current(self, city: str) -> dict:
        """
        Fetch current conditions for a city.

        Raises:
            UpstreamError: If the provider fails to fetch data
        """
        pass

    @abstractmethod
    def get_forecast(self, city: str) -> dict:
        """
        Fetch the 5-day / 3-hour forecast for a city.

        Raises:
            UpstreamError: If the provider fails to fetch data
        """
        pass
