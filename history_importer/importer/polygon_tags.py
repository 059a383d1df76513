"""
Polygon classification by tags

Decides whether the tags of a way describe an area. Whether the way is
actually built as a polygon also depends on its geometry, see GeomBuilder.
"""

from typing import Dict, Optional

from ..config import PolygonTagConfig, get_config


class PolygonClassifier:
    """Classifies ways as area or line from their tags"""

    def __init__(self, config: Optional[PolygonTagConfig] = None):
        self.config = config or get_config().polygon_tags
        self._area_keys = set(self.config.area_keys)
        self._area_values = {
            key: set(values) for key, values in self.config.area_values.items()
        }

    def looks_like_polygon(self, tags: Dict[str, str]) -> bool:
        """
        Check if a way with these tags should become a polygon when closed

        Args:
            tags: Tags of the way

        Returns:
            True if the tags describe an area
        """
        area = tags.get("area")
        if area == "no":
            return False
        if area == "yes":
            return True

        for key, value in tags.items():
            if value == "no":
                continue
            if key in self._area_keys:
                return True
            if value in self._area_values.get(key, ()):
                return True

        return False
