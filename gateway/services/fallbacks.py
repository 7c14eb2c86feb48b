"""Fallback data served when a cache-fronted read cannot reach the store."""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

COMPANY_INFO_RESOURCE = "company-info"
TEAM_MEMBERS_RESOURCE = "team-members"

DEFAULT_FALLBACKS: Dict[str, Any] = {
    COMPANY_INFO_RESOURCE: {
        "name": "Unknown company",
        "logo_url": None,
        "industry": None,
        "size": None,
        "address": None,
        "founded_year": None,
        "website": None,
    },
    TEAM_MEMBERS_RESOURCE: [],
}


class FallbackProvider:
    """
    Supplies per-resource fallback payloads.

    Values are deep-copied on every read so callers can't mutate the source.
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self._data = dict(DEFAULT_FALLBACKS)
        if data:
            self._data.update(data)

    @classmethod
    def from_file(cls, path: Optional[str]) -> 'FallbackProvider':
        """
        Load fallback data from a JSON object keyed by resource name.

        Missing or unreadable files fall back to the built-in defaults.
        """
        if not path:
            return cls()

        file_path = Path(path)
        if not file_path.exists():
            logger.warning(f"Fallback data file not found, using defaults [path={path}]")
            return cls()

        try:
            with open(file_path, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load fallback data, using defaults [path={path}]: {e}")
            return cls()

        if not isinstance(data, dict):
            logger.warning(f"Fallback data must be a JSON object, using defaults [path={path}]")
            return cls()

        logger.info(f"Loaded fallback data for {len(data)} resource(s) [path={path}]")
        return cls(data)

    def get(self, resource: str) -> Any:
        return copy.deepcopy(self._data.get(resource))
