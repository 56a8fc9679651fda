"""Read-only icon lookup tables.

Maps provider-specific weather codes and snapped moon phases to local
asset names. Tables are YAML mappings loaded once at start-up:

    # ui/mappings/darksky.yaml
    clear-day: sun
    rain: rain

Keys are compared as strings, so a Weatherbit code 800 and a moon phase
0.5 are looked up as "800" and "0.5".
"""

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

import yaml

logger = logging.getLogger(__name__)


class IconMapping:
    """Immutable code -> asset lookup."""

    def __init__(self, entries: Mapping[Any, Any], name: str = "", default: str = "na"):
        self.name = name
        self.default = default
        self._entries = MappingProxyType(
            {self._key(k): str(v) for k, v in entries.items()}
        )

    @staticmethod
    def _key(code) -> str:
        if isinstance(code, float):
            return f"{code:g}"
        return str(code)

    @classmethod
    def load(cls, path: Union[str, Path], default: str = "na") -> "IconMapping":
        path = Path(path)
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.warning("Icon mapping not found: %s (all icons fall back to '%s')",
                           path, default)
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"Icon mapping {path} must be a mapping")
        mapping = cls(data, name=path.stem, default=default)
        logger.info("Loaded icon mapping %s (%d entries)", mapping.name, len(mapping))
        return mapping

    def get(self, code, default: Optional[str] = None) -> str:
        fallback = self.default if default is None else default
        if code is None:
            return fallback
        return self._entries.get(self._key(code), fallback)

    def __contains__(self, code) -> bool:
        return self._key(code) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> Mapping[str, str]:
        return self._entries
