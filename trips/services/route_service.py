"""
Distance Provider Service.

Supplies the trip planner with geocoded stops and point-to-point
distances/drive times. The planner never computes road geometry itself;
it consumes one of these providers, invoked once per request for all
stops.

Providers:
- RouteService: Nominatim geocoding + OSRM / OpenRouteService routing
- StaticDistanceProvider: precomputed distance table (tests, offline demos)
"""

import logging
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import polyline
import requests
from django.conf import settings

from .exceptions import DistanceProviderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Location:
    """A named, geocoded place."""
    name: str
    latitude: float
    longitude: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)

    def as_lonlat(self) -> Tuple[float, float]:
        """Return as (lon, lat) for routing APIs."""
        return (self.longitude, self.latitude)


@dataclass
class RouteLeg:
    """Distance and drive time between two consecutive stops."""
    start: Location
    end: Location
    distance_miles: float
    duration_hours: Optional[float] = None
    coordinates: List[Tuple[float, float]] = field(default_factory=list)

    def position_at(self, miles: float) -> Tuple[float, float]:
        """Get approximate (lat, lon) at a given mile marker along the leg."""
        if miles <= 0 or self.distance_miles <= 0:
            return self.start.as_tuple()
        if miles >= self.distance_miles:
            return self.end.as_tuple()

        fraction = miles / self.distance_miles
        if len(self.coordinates) >= 2:
            index = int(fraction * (len(self.coordinates) - 1))
            index = max(0, min(index, len(self.coordinates) - 1))
            return tuple(self.coordinates[index])

        # No geometry: straight-line interpolation between the endpoints
        return (
            self.start.latitude + (self.end.latitude - self.start.latitude) * fraction,
            self.start.longitude + (self.end.longitude - self.start.longitude) * fraction,
        )


@dataclass
class TripRoute:
    """Geocoded stops and the legs between them."""
    locations: List[Location]
    legs: List[RouteLeg]

    @property
    def total_distance_miles(self) -> float:
        return sum(leg.distance_miles for leg in self.legs)


class DistanceProvider(ABC):
    """Interface for looking up a route through an ordered list of places."""

    @abstractmethod
    def get_route(self, place_names: Sequence[str]) -> TripRoute:
        """Geocode every place and return the legs between consecutive ones."""


class RouteService(DistanceProvider):
    """
    Geocoding and route calculation against free routing APIs.

    Uses:
    - Nominatim for geocoding (free, no API key required)
    - OSRM for routing (free, no API key required)

    Alternative: OpenRouteService (requires free API key)
    """

    METERS_TO_MILES = 0.000621371
    SECONDS_TO_HOURS = 1 / 3600
    NOMINATIM_DELAY_SECONDS = 1.1

    def __init__(self, config: Optional[Dict] = None):
        if config is None:
            config = getattr(settings, 'ROUTING_CONFIG', {})
        self.config = config
        self.provider = self.config.get('PROVIDER', 'osrm')
        self.nominatim_url = self.config.get(
            'NOMINATIM_BASE_URL',
            'https://nominatim.openstreetmap.org'
        )
        self.osrm_url = self.config.get(
            'OSRM_BASE_URL',
            'https://router.project-osrm.org'
        )
        self.ors_url = self.config.get(
            'OPENROUTESERVICE_BASE_URL',
            'https://api.openrouteservice.org'
        )
        self.ors_api_key = self.config.get('OPENROUTESERVICE_API_KEY', '')
        self.timeout = self.config.get('REQUEST_TIMEOUT', 30)

        # Nominatim requires a valid User-Agent with contact info
        self.headers = {
            'User-Agent': self.config.get(
                'USER_AGENT',
                'ELDTripPlannerApp/1.0 (https://github.com/eld-trip-planner)'
            ),
            'Accept': 'application/json',
            'Accept-Language': 'en-US,en;q=0.9',
        }

        # Session for connection pooling
        self.session = requests.Session()
        self.session.headers.update(self.headers)

    def get_route(self, place_names: Sequence[str]) -> TripRoute:
        """
        Geocode every stop and route through them in one call.

        Raises:
            DistanceProviderError: If geocoding or routing fails
        """
        if len(place_names) < 2:
            raise DistanceProviderError("At least two stops are required for a route")

        geocoded: Dict[str, Location] = {}
        locations = []
        for name in place_names:
            key = name.strip().lower()
            if key not in geocoded:
                geocoded[key] = self.geocode_address(name)
            cached = geocoded[key]
            locations.append(Location(name=name, latitude=cached.latitude, longitude=cached.longitude))

        if self.provider == 'openrouteservice' and self.ors_api_key:
            legs = self._route_ors(locations)
        else:
            legs = self._route_osrm(locations)

        route = TripRoute(locations=locations, legs=legs)
        logger.info(
            f"Route calculated through {len(locations)} stops: "
            f"{route.total_distance_miles:.1f} miles"
        )
        return route

    def geocode_address(self, address: str) -> Location:
        """
        Convert an address to coordinates using Nominatim.

        Raises:
            DistanceProviderError: If geocoding fails
        """
        url = f"{self.nominatim_url}/search"
        params = {
            'q': address,
            'format': 'json',
            'limit': 1,
        }

        # Respect Nominatim's rate limit (1 request per second)
        time.sleep(self.NOMINATIM_DELAY_SECONDS)

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Geocoding request failed: {e}")
            raise DistanceProviderError(f"Geocoding service error: {e}") from e

        if not data:
            raise DistanceProviderError(f"Could not geocode address: {address}")

        try:
            location = Location(
                name=address,
                latitude=float(data[0]['lat']),
                longitude=float(data[0]['lon'])
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DistanceProviderError(f"Malformed geocoding result for {address}: {e}") from e

        logger.info(f"Geocoded '{address}' to {location.as_tuple()}")
        return location

    def _route_osrm(self, locations: List[Location]) -> List[RouteLeg]:
        """
        Calculate route legs using OSRM (Open Source Routing Machine).

        OSRM API format:
        GET /route/v1/{profile}/{coordinates}?overview=false&steps=true&geometries=polyline

        Coordinates format: lon,lat;lon,lat;lon,lat
        """
        coords_str = ';'.join(
            f"{loc.longitude},{loc.latitude}" for loc in locations
        )
        url = f"{self.osrm_url}/route/v1/driving/{coords_str}"
        params = {
            'overview': 'false',
            'geometries': 'polyline',
            'steps': 'true'
        }

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"OSRM request failed: {e}")
            raise DistanceProviderError(f"Routing service error: {e}") from e

        if data.get('code') != 'Ok':
            raise DistanceProviderError(f"OSRM error: {data.get('message', 'Unknown error')}")

        try:
            raw_legs = data['routes'][0]['legs']
            legs = []
            for i, leg in enumerate(raw_legs):
                coordinates = []
                for step in leg.get('steps', []):
                    coordinates.extend(polyline.decode(step['geometry']))
                legs.append(RouteLeg(
                    start=locations[i],
                    end=locations[i + 1],
                    distance_miles=leg['distance'] * self.METERS_TO_MILES,
                    duration_hours=leg['duration'] * self.SECONDS_TO_HOURS,
                    coordinates=coordinates
                ))
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise DistanceProviderError(f"Malformed OSRM response: {e}") from e

        return _checked_legs(legs, locations)

    def _route_ors(self, locations: List[Location]) -> List[RouteLeg]:
        """
        Calculate route legs using OpenRouteService API.

        Requires API key (free tier available).
        """
        url = f"{self.ors_url}/v2/directions/driving-hgv"  # Heavy goods vehicle
        headers = {
            'Authorization': self.ors_api_key,
            'Content-Type': 'application/json'
        }
        payload = {
            'coordinates': [list(loc.as_lonlat()) for loc in locations],
            'geometry': True,
            'instructions': False
        }

        try:
            response = self.session.post(url, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"OpenRouteService request failed: {e}")
            raise DistanceProviderError(f"Routing service error: {e}") from e

        try:
            route = data['routes'][0]
            decoded = polyline.decode(route['geometry'])
            way_points = route['way_points']
            legs = []
            for i, segment in enumerate(route['segments']):
                legs.append(RouteLeg(
                    start=locations[i],
                    end=locations[i + 1],
                    distance_miles=segment['distance'] * self.METERS_TO_MILES,
                    duration_hours=segment['duration'] * self.SECONDS_TO_HOURS,
                    coordinates=decoded[way_points[i]:way_points[i + 1] + 1]
                ))
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise DistanceProviderError(f"Malformed OpenRouteService response: {e}") from e

        return _checked_legs(legs, locations)


class StaticDistanceProvider(DistanceProvider):
    """
    Distance provider backed by a precomputed table.

    Table format::

        {
            'locations': {'Chicago, IL': [41.8781, -87.6298], ...},
            'legs': [
                {'from': 'New York, NY', 'to': 'Chicago, IL',
                 'distance_miles': 790, 'duration_hours': 13.2},
                ...
            ]
        }

    Names match case-insensitively; a leg may be looked up in either
    direction. A leg from a place to itself is zero miles.
    """

    def __init__(self, table: Optional[Dict] = None):
        if table is None:
            table = getattr(settings, 'ROUTING_CONFIG', {}).get('STATIC_TABLE', {})
        self._locations = {
            _key(name): tuple(coords)
            for name, coords in table.get('locations', {}).items()
        }
        self._legs = {}
        for leg in table.get('legs', []):
            entry = (leg['distance_miles'], leg.get('duration_hours'))
            self._legs[(_key(leg['from']), _key(leg['to']))] = entry
            self._legs.setdefault((_key(leg['to']), _key(leg['from'])), entry)

    def get_route(self, place_names: Sequence[str]) -> TripRoute:
        if len(place_names) < 2:
            raise DistanceProviderError("At least two stops are required for a route")

        locations = []
        for name in place_names:
            coords = self._locations.get(_key(name))
            if coords is None:
                raise DistanceProviderError(f"Could not geocode address: {name}")
            locations.append(Location(name=name, latitude=coords[0], longitude=coords[1]))

        legs = []
        for start, end in zip(locations, locations[1:]):
            if _key(start.name) == _key(end.name):
                legs.append(RouteLeg(start=start, end=end, distance_miles=0.0, duration_hours=0.0))
                continue
            entry = self._legs.get((_key(start.name), _key(end.name)))
            if entry is None:
                raise DistanceProviderError(f"No distance known from {start.name} to {end.name}")
            legs.append(RouteLeg(
                start=start,
                end=end,
                distance_miles=float(entry[0]),
                duration_hours=None if entry[1] is None else float(entry[1])
            ))

        return TripRoute(locations=locations, legs=_checked_legs(legs, locations))


def get_distance_provider(config: Optional[Dict] = None) -> DistanceProvider:
    """Return the distance provider selected by ROUTING_CONFIG['PROVIDER']."""
    if config is None:
        config = getattr(settings, 'ROUTING_CONFIG', {})
    if config.get('PROVIDER') == 'static':
        return StaticDistanceProvider(config.get('STATIC_TABLE', {}))
    return RouteService(config)


def _key(name: str) -> str:
    return name.strip().lower()


def _checked_legs(legs: List[RouteLeg], locations: List[Location]) -> List[RouteLeg]:
    """Reject leg lists that do not cover every consecutive pair of stops."""
    if len(legs) != len(locations) - 1:
        raise DistanceProviderError(
            f"Expected {len(locations) - 1} route legs, provider returned {len(legs)}"
        )
    for leg in legs:
        if not math.isfinite(leg.distance_miles):
            raise DistanceProviderError(
                f"Provider returned no usable distance from {leg.start.name} to {leg.end.name}"
            )
    return legs
