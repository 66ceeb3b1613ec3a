"""Lazily populated directory of centers."""
import json
import logging
import re
from enum import Enum
from typing import Dict, Optional

from catalog.models import Center
from storage.document_store import DocumentNotFoundError, DocumentStore

logger = logging.getLogger(__name__)

CENTERS_DIR = 'centers'
CENTER_FILE_PATTERN = re.compile(r'^(\w+)\.json$')


class PopulationState(Enum):
    """How much of the store a cache has seen."""
    EMPTY = 'empty'
    PARTIAL = 'partial'
    FULL = 'full'


def center_path(center_id: str) -> str:
    return f"{CENTERS_DIR}/{center_id}.json"


class CenterDirectory:
    """
    Keyed cache of centers backed by the document store.

    Single centers are loaded on demand; get_all() enumerates the store
    once and marks the directory FULL, after which a miss is
    authoritative and never reaches the store.
    """

    def __init__(self, store: DocumentStore, geocoder=None):
        """
        Args:
            store: Document store holding centers/<id>.json
            geocoder: Optional MapsClient used to derive fullcity
        """
        self.store = store
        self.geocoder = geocoder
        self._centers: Dict[str, Center] = {}
        self.state = PopulationState.EMPTY

    def peek(self, center_id: str) -> Optional[Center]:
        """Cache-only lookup."""
        return self._centers.get(center_id)

    def get(self, center_id) -> Optional[Center]:
        """
        Return a center, loading it from the store on a cache miss.

        Args:
            center_id: Center key

        Returns:
            Center or None if it does not exist
        """
        if not isinstance(center_id, str) or not center_id:
            return None

        center = self._centers.get(center_id)
        if center is not None or self.state is PopulationState.FULL:
            return center

        try:
            text = self.store.get_text(center_path(center_id))
        except DocumentNotFoundError:
            logger.info(f"Center not found: {center_id}")
            return None

        center = self._parse_center(text, center_id)
        self._centers[center_id] = center
        self.state = PopulationState.PARTIAL
        return center

    def get_all(self) -> Dict[str, Center]:
        """
        Return every center, enumerating the store on first use.

        Returns:
            Dictionary mapping center id to Center
        """
        if self.state is not PopulationState.FULL:
            centers = self._centers
            loaded = 0
            for file_name in self.store.list_files(CENTERS_DIR):
                match = CENTER_FILE_PATTERN.match(file_name)
                if not match or match.group(1) in centers:
                    continue
                center_id = match.group(1)
                text = self.store.get_text(center_path(center_id))
                centers[center_id] = self._parse_center(text, center_id)
                loaded += 1

            self.state = PopulationState.FULL
            logger.info(f"Loaded {loaded} centers, {len(centers)} cached")
        return self._centers

    def invalidate(self) -> None:
        """Drop every cached center."""
        logger.info(f"Invalidating {len(self._centers)} cached centers")
        self._centers = {}
        self.state = PopulationState.EMPTY

    def _parse_center(self, text: str, center_id: str) -> Center:
        center = Center.from_dict(json.loads(text), center_id)
        if not center.fullcity:
            center.fullcity = self._resolve_fullcity(center)
        return center

    def _resolve_fullcity(self, center: Center) -> Optional[str]:
        if self.geocoder is None or not center.address:
            return None
        try:
            return self.geocoder.resolve_address(center.address).get('fullcity')
        except Exception as e:
            logger.warning(f"Failed to geocode center {center.id}: {e}")
            return None
