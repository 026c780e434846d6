"""Domain models - pure data structures independent of any API."""
from dataclasses import asdict, dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class CitySuggestion:
    """One autocomplete entry, mapped from a city search record."""
    name: str
    country: str
    state: Optional[str] = None
    population: int = 0
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @classmethod
    def from_record(cls, record: dict) -> "CitySuggestion":
        """Map an upstream record (city/region naming) to a suggestion."""
        return cls(
            name=record["city"],
            country=record.get("country", ""),
            state=record.get("region"),
            population=record.get("population") or 0,
            latitude=record.get("latitude"),
            longitude=record.get("longitude"),
        )


@dataclass
class CurrentConditions:
    temp: float
    feels_like: float
    humidity: float
    wind_speed: float
    description: str  # e.g., "broken clouds", "light rain"
    icon: str  # OpenWeather icon code, e.g. "04d"


@dataclass
class ForecastDay:
    date: str  # ISO calendar date, e.g. "2024-05-24"
    temp: float
    description: str
    icon: str


@dataclass
class WeatherViewModel:
    """UI-ready weather for one city: current conditions plus daily forecast."""
    current: CurrentConditions
    forecast: List[ForecastDay] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "WeatherViewModel":
        return cls(
            current=CurrentConditions(**data["current"]),
            forecast=[ForecastDay(**day) for day in data.get("forecast", [])],
        )
