"""Flask application - city search and weather proxy endpoints plus the index page."""
import logging
from typing import Callable, Optional

from flask import Flask, jsonify, render_template, request

from city_search_service import CitySearchService
from config import Settings, rapid_api_key, weather_api_key
from geodb_provider import GeoDBProvider
from layout import TEMPLATE_DIR, render_weather
from openweather_provider import OpenWeatherProvider
from ttl_cache import BoundedTTLCache
from weather_provider import ProviderError, RateLimited, ValidationError, WeatherProviderBase
from weather_service import WeatherService

RATE_LIMIT_BODY = {
    "error": "rate limit exceeded",
    "message": "Too many requests. Please try again in a moment.",
}


def _required_arg(name: str, message: str) -> str:
    value = request.args.get(name, "")
    if not value.strip():
        raise ValidationError(message)
    return value


def create_app(
    settings: Optional[Settings] = None,
    city_provider_factory: Optional[Callable[[], GeoDBProvider]] = None,
    weather_provider_factory: Optional[Callable[[], WeatherProviderBase]] = None,
    cache: Optional[BoundedTTLCache] = None
) -> Flask:
    """
    Build the application.

    Provider factories run on every request so API keys are read per call;
    a missing key raises ConfigurationError inside the handler and becomes a
    500 response. Tests inject factories returning mocks.
    """
    settings = settings or Settings()
    app = Flask(__name__, template_folder=TEMPLATE_DIR)

    if cache is None:
        cache = BoundedTTLCache(max_entries=settings.cache_max_entries, ttl_seconds=settings.cache_ttl)
    if city_provider_factory is None:
        def city_provider_factory():
            return GeoDBProvider(api_key=rapid_api_key(), timeout=settings.timeout)
    if weather_provider_factory is None:
        def weather_provider_factory():
            return OpenWeatherProvider(
                api_key=weather_api_key(),
                units=settings.units,
                lang=settings.lang,
                timeout=settings.timeout,
            )

    city_search = CitySearchService(city_provider_factory, cache)
    app.extensions["city_search"] = city_search

    def get_weather(city: str):
        return WeatherService(weather_provider_factory()).get_weather(city)

    @app.errorhandler(ValidationError)
    def handle_validation_error(err):
        return jsonify({"error": str(err)}), 400

    @app.route("/api/cities")
    def cities():
        query = _required_arg("query", "Query parameter is required")
        try:
            data = city_search.search(query)
        except RateLimited:
            return jsonify(RATE_LIMIT_BODY), 429
        except ProviderError as err:
            logging.error(f"Error fetching cities: {err}")
            return jsonify({"error": "Failed to fetch cities"}), 500
        return jsonify(data), 200

    @app.route("/api/weather")
    def weather():
        city = _required_arg("city", "City parameter is required")
        try:
            view_model = get_weather(city)
        except ProviderError as err:
            logging.error(f"Error fetching weather: {err}")
            return jsonify({"error": "Failed to fetch weather data"}), 500
        return jsonify(view_model.to_dict()), 200

    @app.route("/")
    def index():
        city = request.args.get("city", "").strip()
        weather_html = ""
        error = None
        if city:
            try:
                weather_html = render_weather(get_weather(city))
            except ProviderError as err:
                logging.error(f"Error fetching weather: {err}")
                error = "Weather data could not be retrieved"
        return render_template("index.html", city=city, weather_html=weather_html, error=error)

    logging.info("App ready (city cache ttl=%ss, max entries=%s)", cache.ttl_seconds, cache.max_entries)
    return app
