"""GeoDB Cities (RapidAPI) city search provider implementation."""
import logging
import requests
from typing import List
from weather_provider import CitySearchProviderBase, RateLimited, UpstreamError
from weather_data import CitySuggestion


DEFAULT_ERROR_MESSAGE = "Failed to fetch cities"


class GeoDBProvider(CitySearchProviderBase):
    """
    City search provider using the GeoDB Cities API on RapidAPI.

    Only performs the HTTP call and classifies the result; caching is left to
    the caller (see ``city_search_service.CitySearchService``).
    """

    BASE_URL = "https://wft-geo-db.p.rapidapi.com/v1/geo/cities"
    HOST = "wft-geo-db.p.rapidapi.com"

    def __init__(self, api_key: str, limit: int = 5, timeout: int = 10):
        """
        Initialize GeoDB provider.

        Args:
            api_key: RapidAPI key
            limit: Maximum number of cities per search
            timeout: HTTP request timeout in seconds
        """
        self.api_key = api_key
        self.limit = limit
        self.timeout = timeout

    def search(self, query: str) -> List[CitySuggestion]:
        data = self.search_raw(query)
        try:
            suggestions = [CitySuggestion.from_record(record) for record in data.get("data") or []]
        except (KeyError, TypeError, AttributeError) as e:
            logging.error(f"Failed to parse city records: {e}", exc_info=True)
            raise UpstreamError(f"Failed to parse response: {str(e)}") from e
        logging.info(f"City search '{query}' returned {len(suggestions)} suggestions")
        return suggestions

    def search_raw(self, query: str) -> dict:
        """
        Fetch the upstream JSON body for a name-prefix search.

        Returns:
            dict: Body shaped ``{"data": [{"city", "country", "region", ...}]}``

        Raises:
            RateLimited: If the API answered HTTP 429
            UpstreamError: If the request fails or the body is malformed
        """
        params = {
            "namePrefix": query,
            "limit": self.limit,
            "sort": "-population",
        }
        headers = {
            "X-RapidAPI-Key": self.api_key,
            "X-RapidAPI-Host": self.HOST,
        }

        try:
            logging.info(f"Making GeoDB API request: {self.BASE_URL}")
            logging.debug(f"Request parameters: {params}")

            response = requests.get(self.BASE_URL, params=params, headers=headers, timeout=self.timeout)

            logging.info(f"API response status: {response.status_code}")

            if response.status_code == 429:
                logging.warning("GeoDB API rate limit exceeded")
                raise RateLimited("rate limit exceeded")

            if not response.ok:
                logging.error(f"API request failed with status {response.status_code}")
                self._handle_error_response(response)

            try:
                data = response.json()
            except ValueError as e:
                # requests.JSONDecodeError is also a RequestException
                logging.error(f"Failed to parse API response: {e}", exc_info=True)
                raise UpstreamError(f"Failed to parse response: {str(e)}") from e
            if not isinstance(data, dict) or not isinstance(data.get("data", []), list):
                raise UpstreamError("Response missing 'data' array")
            logging.debug(f"API response (truncated): {str(data)[:500]}...")
            return data

        except requests.exceptions.RequestException as e:
            logging.error(f"Network error during API request: {e}")
            raise UpstreamError(f"Network error: {str(e)}") from e

    def _handle_error_response(self, response: requests.Response) -> None:
        """Raise UpstreamError with the upstream message when one is present."""
        try:
            error_data = response.json()
        except ValueError:
            logging.error(f"Non-JSON error response: HTTP {response.status_code}, body: {response.text[:500]}")
            raise UpstreamError(DEFAULT_ERROR_MESSAGE)

        logging.error(f"GeoDB API error response: {error_data}")
        message = error_data.get("message") if isinstance(error_data, dict) else None
        raise UpstreamError(message or DEFAULT_ERROR_MESSAGE)
