"""Client for this application's own /api endpoints."""
import logging
import requests
from typing import List
from weather_provider import CitySearchProviderBase, RateLimited, UpstreamError, NotFound
from weather_data import CitySuggestion, WeatherViewModel


class CitiesApiClient(CitySearchProviderBase):
    """
    Talks to a running CityWeather server.

    Satisfies the city search contract, so it can feed an
    ``AutocompleteController`` exactly like ``GeoDBProvider`` does, but goes
    through the server's cached proxy instead of calling RapidAPI directly.
    """

    def __init__(self, base_url: str = "http://127.0.0.1:5000", timeout: int = 10):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def search(self, query: str) -> List[CitySuggestion]:
        data = self._get_json("/api/cities", {"query": query}, "Failed to fetch cities")
        records = data.get("data") or []
        return [CitySuggestion.from_record(record) for record in records]

    def fetch_weather(self, city: str) -> WeatherViewModel:
        data = self._get_json("/api/weather", {"city": city}, "Weather data could not be retrieved")
        try:
            return WeatherViewModel.from_dict(data)
        except (KeyError, TypeError) as e:
            raise UpstreamError(f"Failed to parse response: {str(e)}") from e

    def _get_json(self, path: str, params: dict, error_message: str) -> dict:
        url = f"{self.base_url}{path}"
        try:
            logging.debug(f"GET {url} {params}")
            response = requests.get(url, params=params, timeout=self.timeout)
            if response.status_code == 429:
                raise RateLimited("rate limit exceeded")
            if response.status_code == 404:
                raise NotFound(error_message)
            if not response.ok:
                logging.error(f"{url} failed with status {response.status_code}")
                raise UpstreamError(error_message)
            try:
                return response.json()
            except ValueError as e:
                raise UpstreamError(f"Failed to parse response: {str(e)}") from e
        except requests.exceptions.RequestException as e:
            logging.error(f"Network error calling {url}: {e}")
            raise UpstreamError(f"Network error: {str(e)}") from e
