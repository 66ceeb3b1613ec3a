"""Google Maps client for address resolution and static map images."""
import logging
import time
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests

logger = logging.getLogger(__name__)


class GeocodingError(Exception):
    """Raised when an address cannot be resolved."""


class MapsClient:
    """Resolves free-text addresses to a locality and builds map image URLs."""

    GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
    STATIC_MAP_URL = "https://maps.googleapis.com/maps/api/staticmap"
    MAX_RETRIES = 3
    BASE_DELAY = 1  # seconds

    def __init__(
        self,
        api_key: str,
        timeout: int = 10,
        map_size: str = '600x300',
        zoom: int = 15
    ):
        """
        Initialize the maps client.

        Args:
            api_key: Google Maps API key
            timeout: HTTP request timeout in seconds (default: 10)
            map_size: Static map dimensions as WIDTHxHEIGHT
            zoom: Static map zoom level
        """
        self.api_key = api_key
        self.timeout = timeout
        self.map_size = map_size
        self.zoom = zoom

    def resolve_address(self, address: str) -> Dict[str, Any]:
        """
        Resolve an address to its locality.

        Args:
            address: Free-text, possibly multi-line address

        Returns:
            Dictionary with 'fullcity', e.g. "Wroclaw, Poland"

        Raises:
            GeocodingError: If the address cannot be resolved
            requests.RequestException: If all retry attempts fail
        """
        params = {
            'address': ' '.join(address.split()),
            'key': self.api_key,
        }
        payload = self._get_json(self.GEOCODE_URL, params)

        status = payload.get('status')
        results = payload.get('results') or []
        if status != 'OK' or not results:
            raise GeocodingError(f"Geocoding '{address}' failed with status {status}")

        fullcity = self._fullcity(results[0].get('address_components', []))
        if not fullcity:
            raise GeocodingError(f"No locality found for '{address}'")
        logger.info(f"Resolved address to {fullcity}")
        return {'fullcity': fullcity}

    def static_map_url(self, address: str) -> str:
        """
        Build a static map image URL with a marker at address.

        Args:
            address: Single-line address

        Returns:
            Image URL
        """
        params = {
            'center': address,
            'zoom': self.zoom,
            'size': self.map_size,
            'markers': address,
            'key': self.api_key,
        }
        return f"{self.STATIC_MAP_URL}?{urlencode(params)}"

    def _fullcity(self, components: list) -> Optional[str]:
        """
        Compose "<locality>, <country>" from geocoder address components.

        Args:
            components: address_components of a geocoding result

        Returns:
            Locality string or None if no locality is present
        """
        by_type = {}
        for component in components:
            for component_type in component.get('types', []):
                by_type.setdefault(component_type, component.get('long_name'))

        city = (
            by_type.get('locality')
            or by_type.get('postal_town')
            or by_type.get('administrative_area_level_2')
        )
        if not city:
            return None
        country = by_type.get('country')
        return f"{city}, {country}" if country else city

    def _get_json(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        GET a JSON document with retry logic.

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        for attempt in range(self.MAX_RETRIES):
            try:
                response = requests.get(url, params=params, timeout=self.timeout)
                response.raise_for_status()
                return response.json()

            except requests.RequestException as e:
                if attempt < self.MAX_RETRIES - 1:
                    delay = self.BASE_DELAY * (2 ** attempt)
                    logger.warning(
                        f"Geocoding request failed (attempt {attempt + 1}/"
                        f"{self.MAX_RETRIES}): {e}. Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.MAX_RETRIES} geocoding attempts failed. "
                        f"Last error: {e}"
                    )
                    raise
