"""City weather lookup - web server and command line entry point."""
import argparse
import logging
import sys
import time

from api_client import CitiesApiClient
from app import create_app
from autocomplete import AutocompleteController, SearchState
from config import Settings, load_settings, rapid_api_key, setup_logging, weather_api_key
from geodb_provider import GeoDBProvider
from layout import format_current_lines, format_forecast_lines, format_suggestion
from openweather_provider import OpenWeatherProvider
from weather_provider import ProviderError
from weather_service import WeatherService

BUSY_STATES = (SearchState.DEBOUNCING, SearchState.SEARCHING, SearchState.RATE_LIMITED_RETRYING)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser("City weather lookup")
    parser.add_argument("--log-file", default=None)
    parser.add_argument("--verbose", action="store_true")
    parser.add_argument("--timeout", type=int, default=None, help="HTTP timeout in seconds")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the web application")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.add_argument("--cache-ttl", type=int, default=None)
    serve.add_argument("--debug", action="store_true")

    weather = subparsers.add_parser("weather", help="Print current weather and forecast for a city")
    weather.add_argument("city")
    weather.add_argument("--units", choices=["metric", "imperial", "standard"], default=None)

    cities = subparsers.add_parser("cities", help="Print city suggestions for a name prefix")
    cities.add_argument("prefix")

    lookup = subparsers.add_parser("lookup", help="Interactive city search against a running server")
    lookup.add_argument("--server", default=None, help="Base URL (default: http://HOST:PORT)")
    return parser.parse_args(argv)


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    for name in ("timeout", "host", "port", "cache_ttl", "units"):
        value = getattr(args, name, None)
        if value is not None:
            setattr(settings, name, value)
    return settings


def print_weather(city, view_model) -> None:
    temp, description, details = format_current_lines(view_model)
    print(f"{city}: {temp} {description}")
    print(details)
    for line in format_forecast_lines(view_model):
        print(f"  {line}")


def run_weather(settings: Settings, city: str) -> int:
    try:
        provider = OpenWeatherProvider(
            api_key=weather_api_key(),
            units=settings.units,
            lang=settings.lang,
            timeout=settings.timeout,
        )
        view_model = WeatherService(provider).get_weather(city)
    except ProviderError as err:
        logging.error("Weather fetch failed: %s", err)
        return 1

    print_weather(city, view_model)
    return 0


def run_cities(settings: Settings, prefix: str) -> int:
    try:
        provider = GeoDBProvider(api_key=rapid_api_key(), timeout=settings.timeout)
        suggestions = provider.search(prefix)
    except ProviderError as err:
        logging.error("City search failed: %s", err)
        return 1

    if not suggestions:
        print("No cities found")
    for suggestion in suggestions:
        print(f"{suggestion.name} ({format_suggestion(suggestion)})")
    return 0


def wait_until_settled(controller: AutocompleteController, timeout: float = 10.0, poll: float = 0.05) -> None:
    """Block while the controller is debouncing, searching or waiting to retry."""
    deadline = time.monotonic() + timeout
    while controller.state in BUSY_STATES and time.monotonic() < deadline:
        time.sleep(poll)


def run_lookup(settings: Settings, base_url: str, lines=None) -> int:
    """
    Line-based front end for the autocomplete controller.

    A line of text is typed into the search box, a number picks that
    suggestion, an empty line submits the typed text and ``q`` quits.
    """
    client = CitiesApiClient(base_url, timeout=settings.timeout)

    def show_weather(city):
        try:
            view_model = client.fetch_weather(city)
        except ProviderError as err:
            logging.error("Weather fetch failed: %s", err)
            print("Weather data could not be retrieved")
            return
        print_weather(city, view_model)

    controller = AutocompleteController(client, show_weather)
    controller.focus()
    print("Type a city name, a number to pick a suggestion, an empty line to search, q to quit")

    for line in (lines if lines is not None else sys.stdin):
        entry = line.rstrip("\n")
        command = entry.strip()
        if command.lower() == "q":
            break
        if command.isdigit() and controller.suggestions:
            index = int(command) - 1
            if not 0 <= index < len(controller.suggestions):
                print(f"No suggestion {command}")
                continue
            controller.highlight(index)
            controller.key_down("Enter")
            continue
        if not command:
            controller.key_down("Enter")
            continue

        controller.input_changed(entry)
        wait_until_settled(controller)
        if not controller.suggestions:
            print(controller.status_text)
        for number, suggestion in enumerate(controller.suggestions, 1):
            print(f"{number}. {suggestion.name} ({format_suggestion(suggestion)})")
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)
    settings = apply_overrides(load_settings(), args)

    if args.command == "weather":
        return run_weather(settings, args.city)
    if args.command == "cities":
        return run_cities(settings, args.prefix)
    if args.command == "lookup":
        return run_lookup(settings, args.server or f"http://{settings.host}:{settings.port}")

    app = create_app(settings)
    logging.info("Serving on http://%s:%s", settings.host, settings.port)
    app.run(host=settings.host, port=settings.port, debug=args.debug)
    return 0


if __name__ == "__main__":
    sys.exit(main())
