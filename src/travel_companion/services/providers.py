"""Weather and nearby-place providers.

Both are interfaces so a real data source can be plugged in later; the
shipped implementations return mock data.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any

WEATHER_CONDITIONS = ("sunny", "cloudy", "rainy")


@dataclass
class WeatherData:
    """Current weather at a location."""

    temperature: int  # °C
    condition: str
    humidity: int  # %
    wind_speed: int  # km/h
    visibility: int  # km
    description: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON wire form."""
        return {
            "temperature": self.temperature,
            "condition": self.condition,
            "humidity": self.humidity,
            "windSpeed": self.wind_speed,
            "visibility": self.visibility,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WeatherData:
        """Create from the JSON wire form."""
        return cls(
            temperature=int(data["temperature"]),
            condition=str(data["condition"]),
            humidity=int(data["humidity"]),
            wind_speed=int(data["windSpeed"]),
            visibility=int(data["visibility"]),
            description=str(data.get("description", "")),
        )


@dataclass(frozen=True)
class Suggestion:
    """A place of interest near the current location."""

    id: str
    name: str
    type: str  # restaurant, cafe, shopping, gas, attraction
    distance: str
    rating: float
    description: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON wire form."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Suggestion:
        """Create from the JSON wire form."""
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            type=str(data["type"]),
            distance=str(data["distance"]),
            rating=float(data["rating"]),
            description=str(data.get("description", "")),
        )


class WeatherProvider(ABC):
    """Source of weather data."""

    @abstractmethod
    def fetch_weather(self, latitude: float, longitude: float) -> WeatherData:
        """Return the current weather at a location."""


class NearbyProvider(ABC):
    """Source of nearby place suggestions."""

    @abstractmethod
    def fetch_nearby(self, latitude: float, longitude: float) -> list[Suggestion]:
        """Return suggestions near a location."""


class MockWeatherProvider(WeatherProvider):
    """Plausible random weather, stable for a given location."""

    def fetch_weather(self, latitude: float, longitude: float) -> WeatherData:
        # Seed from coordinates rounded to ~1 km so nearby samples agree
        rng = random.Random(f"{latitude:.2f},{longitude:.2f}")
        return WeatherData(
            temperature=round(20 + rng.random() * 15),
            condition=rng.choice(WEATHER_CONDITIONS),
            humidity=round(40 + rng.random() * 40),
            wind_speed=round(5 + rng.random() * 15),
            visibility=round(8 + rng.random() * 7),
            description="Partly cloudy with light winds",
        )


MOCK_SUGGESTIONS = (
    Suggestion("1", "Central Park Cafe", "cafe", "0.3 km", 4.5,
               "Cozy coffee shop with outdoor seating and fresh pastries"),
    Suggestion("2", "Mediterranean Grill", "restaurant", "0.5 km", 4.7,
               "Authentic Mediterranean cuisine with vegetarian options"),
    Suggestion("3", "City Mall", "shopping", "1.2 km", 4.2,
               "Large shopping center with 100+ stores and restaurants"),
    Suggestion("4", "Shell Gas Station", "gas", "0.8 km", 4.0,
               "Full-service gas station with convenience store"),
    Suggestion("5", "Art Museum", "attraction", "2.1 km", 4.8,
               "Contemporary art museum with rotating exhibitions"),
    Suggestion("6", "Riverside Restaurant", "restaurant", "1.5 km", 4.6,
               "Fine dining with scenic river views and local cuisine"),
)


class MockNearbyProvider(NearbyProvider):
    """Fixed list of suggestions regardless of location."""

    def fetch_nearby(self, latitude: float, longitude: float) -> list[Suggestion]:
        return list(MOCK_SUGGESTIONS)
