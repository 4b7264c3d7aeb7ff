"""
Best-effort current location
"""

import logging
import time
from dataclasses import dataclass

import requests

from ..config import MAPS_URL
from ..errors import LocationTimeout

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Location:
    lat: float
    lng: float

    @property
    def maps_url(self):
        return MAPS_URL.format(lat=self.lat, lng=self.lng)


class IpLocationProvider:
    """
    Coarse location from the public IP address. Results are cached for
    `cache_seconds` so repeated alerts do not hit the network each time.
    """

    IPINFO_URL = "https://ipinfo.io/json"

    def __init__(self, url=IPINFO_URL, cache_seconds=300):
        self.url = url
        self.cache_seconds = cache_seconds
        self._cached_location = None
        self._cache_time = 0.0

    def get_current(self, timeout):
        """
        Returns a Location, or None when the service has no fix.
        Raises LocationTimeout when the lookup does not finish in time.
        """
        if self._cached_location and (time.time() - self._cache_time) < self.cache_seconds:
            return self._cached_location

        try:
            response = requests.get(self.url, timeout=timeout)
            response.raise_for_status()
            data = response.json()
        except requests.Timeout as e:
            raise LocationTimeout(f"No location within {timeout}s") from e
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Location lookup failed: {e}")
            return None

        loc = data.get("loc")
        if not loc:
            return None
        try:
            lat, lng = (float(part) for part in loc.split(","))
        except ValueError:
            logger.warning(f"Unparseable location '{loc}'")
            return None

        self._cached_location = Location(lat, lng)
        self._cache_time = time.time()
        return self._cached_location


class StaticLocationProvider:
    """Fixed coordinates, for devices that know where they are installed."""

    def __init__(self, lat, lng):
        self.location = Location(lat, lng)

    def get_current(self, timeout):
        return self.location
