"""Display logic for weather results - pure functions for testability."""
import os
from datetime import date
from typing import List, Optional, Tuple

from jinja2 import Environment, FileSystemLoader, select_autoescape

from weather_data import CitySuggestion, WeatherViewModel

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")
ICON_BASE_URL = "https://openweathermap.org/img/wn"

_env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html"]),
)


def format_temperature(temp: float) -> str:
    return f"{round(temp)}°"


def icon_url(icon: str, large: bool = False) -> str:
    """OpenWeather icon image URL; ``large`` selects the @2x variant."""
    suffix = "@2x" if large else ""
    return f"{ICON_BASE_URL}/{icon}{suffix}.png"


def weekday_label(iso_date: str) -> str:
    """Short weekday name for an ISO date, e.g. "2024-05-27" -> "Mon"."""
    return date.fromisoformat(iso_date).strftime("%a")


def format_current_lines(view_model: WeatherViewModel) -> Tuple[str, str, str]:
    """
    Text for the current conditions block.

    Returns:
        Tuple of (temperature, description, details line)
    """
    current = view_model.current
    details = (
        f"Feels like: {format_temperature(current.feels_like)}  "
        f"Humidity: {current.humidity}%  "
        f"Wind: {current.wind_speed} m/s"
    )
    return format_temperature(current.temp), current.description.capitalize(), details


def format_forecast_lines(view_model: WeatherViewModel) -> List[str]:
    return [
        f"{weekday_label(day.date)}  {format_temperature(day.temp):>4}  {day.description}"
        for day in view_model.forecast
    ]


def format_suggestion(suggestion: CitySuggestion) -> str:
    """Secondary line under a suggestion's name: "State, Country • n residents"."""
    text = f"{suggestion.state}, {suggestion.country}" if suggestion.state else suggestion.country
    if suggestion.population > 0:
        text += f" • {suggestion.population:,} residents"
    return text


def build_display(view_model: WeatherViewModel) -> dict:
    """Everything the weather template needs, already formatted."""
    temp, description, details = format_current_lines(view_model)
    return {
        "current": {
            "temp": temp,
            "description": description,
            "details": details,
            "icon_url": icon_url(view_model.current.icon, large=True),
        },
        "forecast": [
            {
                "weekday": weekday_label(day.date),
                "temp": format_temperature(day.temp),
                "description": day.description,
                "icon_url": icon_url(day.icon),
            }
            for day in view_model.forecast
        ],
    }


def render_weather(view_model: Optional[WeatherViewModel]) -> str:
    """Render the weather HTML fragment; nothing to show renders empty."""
    if view_model is None:
        return ""
    return _env.get_template("weather.html").render(display=build_display(view_model))
