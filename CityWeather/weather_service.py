"""Weather service - aggregates current conditions and forecast into a view model."""
import logging
from datetime import datetime, timedelta, timezone
from typing import List

from weather_provider import WeatherProviderBase, ProviderError, UpstreamError
from weather_data import CurrentConditions, ForecastDay, WeatherViewModel

FORECAST_DAYS = 5


def group_daily_forecast(records: List[dict], tz_offset: int = 0, days: int = FORECAST_DAYS) -> List[ForecastDay]:
    """
    Reduce 3-hourly forecast records to one entry per calendar day.

    The first record seen for each date is kept. The first date (the rest of
    today) is dropped and the next ``days`` dates are returned in order.

    Args:
        records: Forecast ``list`` entries, each with ``dt``, ``main`` and ``weather``
        tz_offset: Seconds east of UTC used to decide the calendar date
        days: Number of days to keep after today
    """
    tz = timezone(timedelta(seconds=tz_offset))
    first_by_date = {}
    for record in records:
        date = datetime.fromtimestamp(record["dt"], tz).date().isoformat()
        if date not in first_by_date:
            first_by_date[date] = record

    daily = []
    for date in sorted(first_by_date)[1:days + 1]:
        record = first_by_date[date]
        weather = record["weather"][0]
        daily.append(ForecastDay(
            date=date,
            temp=record["main"]["temp"],
            description=weather.get("description", ""),
            icon=weather.get("icon", ""),
        ))
    return daily


def parse_current(data: dict) -> CurrentConditions:
    """Map a Current Weather API body to CurrentConditions."""
    main_data = data["main"]
    weather = data["weather"][0]
    wind_data = data.get("wind") or {}
    return CurrentConditions(
        temp=main_data["temp"],
        feels_like=main_data.get("feels_like", main_data["temp"]),
        humidity=main_data.get("humidity", 0.0),
        wind_speed=wind_data.get("speed", 0.0),
        description=weather.get("description", ""),
        icon=weather.get("icon", ""),
    )


class WeatherService:
    """
    Combines the provider's current and forecast endpoints for one city.

    Either fetch failing fails the whole call. No retries happen here; the
    HTTP layer reports the failure and the user can search again.
    """

    def __init__(self, provider: WeatherProviderBase, forecast_days: int = FORECAST_DAYS):
        self.provider = provider
        self.forecast_days = forecast_days

    def get_weather(self, city: str) -> WeatherViewModel:
        """
        Fetch and shape the weather for ``city``.

        Raises:
            UpstreamError: If either fetch fails or a body cannot be parsed
                (``NotFound`` for unknown cities)
        """
        logging.info(f"Fetching weather for '{city}'")
        try:
            current_data = self.provider.get_current(city)
            forecast_data = self.provider.get_forecast(city)
        except UpstreamError:
            raise
        except ProviderError as e:
            # A throttled weather call is not retried server-side
            raise UpstreamError(str(e)) from e

        try:
            current = parse_current(current_data)
            tz_offset = (forecast_data.get("city") or {}).get("timezone", 0)
            forecast = group_daily_forecast(forecast_data["list"], tz_offset, self.forecast_days)
        except (KeyError, IndexError, ValueError, TypeError, AttributeError) as e:
            logging.error(f"Failed to shape weather data: {e}", exc_info=True)
            raise UpstreamError(f"Failed to parse response: {str(e)}") from e

        logging.info(f"Weather for '{city}': {current.temp}°, {current.description}, {len(forecast)} forecast days")
        return WeatherViewModel(current=current, forecast=forecast)
