"""OpenWeather current weather and 5-day forecast provider implementation."""
import logging
import requests
from weather_provider import WeatherProviderBase, UpstreamError, NotFound


class OpenWeatherProvider(WeatherProviderBase):
    """
    Weather provider using the free OpenWeather 2.5 APIs.

    Current Weather: https://openweathermap.org/current
    5 day / 3 hour forecast: https://openweathermap.org/forecast5

    Both endpoints are queried by city name. The raw JSON body is returned;
    shaping it into a view model is ``weather_service.WeatherService``'s job.
    """

    CURRENT_URL = "https://api.openweathermap.org/data/2.5/weather"
    FORECAST_URL = "https://api.openweathermap.org/data/2.5/forecast"

    def __init__(
        self,
        api_key: str,
        units: str = "metric",
        lang: str = "en",
        timeout: int = 10
    ):
        """
        Initialize OpenWeather provider.

        Args:
            api_key: OpenWeather API key
            units: Temperature units ("metric", "imperial", or "standard")
            lang: Language code for descriptions (e.g., "en", "de")
            timeout: HTTP request timeout in seconds
        """
        self.api_key = api_key
        self.units = units
        self.lang = lang
        self.timeout = timeout

    def get_current(self, city: str) -> dict:
        data = self._request(self.CURRENT_URL, city)
        # Current Weather API returns data directly (not nested in "current")
        if not data.get("weather"):
            logging.error("Response missing 'weather' array")
            raise UpstreamError("Response missing 'weather' array")
        if not data.get("main"):
            raise UpstreamError("Response missing 'main' block")
        return data

    def get_forecast(self, city: str) -> dict:
        data = self._request(self.FORECAST_URL, city)
        if not isinstance(data.get("list"), list):
            logging.error("Response missing 'list' array")
            raise UpstreamError("Response missing 'list' array")
        logging.debug(f"Forecast contains {len(data['list'])} records")
        return data

    def _request(self, url: str, city: str) -> dict:
        params = {
            "q": city,
            "appid": self.api_key,
            "units": self.units,
            "lang": self.lang,
        }

        try:
            logging.info(f"Making OpenWeather API request: {url}")
            logging.debug(f"Request parameters: q={city}, units={self.units}, lang={self.lang}")

            response = requests.get(url, params=params, timeout=self.timeout)

            logging.info(f"API response status: {response.status_code}")

            if not response.ok:
                logging.error(f"API request failed with status {response.status_code}")
                self._handle_error_response(response)

            try:
                data = response.json()
            except ValueError as e:
                # requests.JSONDecodeError is also a RequestException
                logging.error(f"Failed to parse API response: {e}", exc_info=True)
                raise UpstreamError(f"Failed to parse response: {str(e)}") from e
            if not isinstance(data, dict):
                raise UpstreamError("Unexpected response body")
            logging.debug(f"API response (truncated): {str(data)[:500]}...")
            return data

        except requests.exceptions.RequestException as e:
            logging.error(f"Network error during API request: {e}")
            raise UpstreamError(f"Network error: {str(e)}") from e

    def _handle_error_response(self, response: requests.Response) -> None:
        """Parse and raise error from OpenWeather error response."""
        error_cls = NotFound if response.status_code == 404 else UpstreamError
        try:
            error_data = response.json()
        except ValueError:
            # Not JSON, use HTTP status
            logging.error(f"Non-JSON error response: HTTP {response.status_code}, body: {response.text[:500]}")
            raise error_cls(f"HTTP {response.status_code}: {response.text[:200]}")

        cod = error_data.get("cod", response.status_code)
        message = error_data.get("message", "Unknown error")
        logging.error(f"OpenWeather API error response: {error_data}")
        raise error_cls(f"OpenWeather API error {cod}: {message}")
