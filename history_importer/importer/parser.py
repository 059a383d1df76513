"""
OSM history parser

Parses OSM-JSON history documents into NodeVersion, WayVersion and
RelationVersion objects in stream order
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

from loguru import logger

from .models import NodeVersion, RelationMember, RelationVersion, WayVersion

Entity = Union[NodeVersion, WayVersion, RelationVersion]

# Stream order of the entity kinds
_TYPE_ORDER = {NodeVersion: 0, WayVersion: 1, RelationVersion: 2}


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an ISO-8601 string or epoch seconds into an aware UTC datetime
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValueError(f"invalid timestamp: {value!r}")
    else:
        raise ValueError(f"invalid timestamp: {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _require(element: Dict[str, Any], key: str) -> Any:
    if key not in element or element[key] is None:
        raise ValueError(
            f"{element.get('type', 'element')} #{element.get('id', '?')} "
            f"is missing required field '{key}'"
        )
    return element[key]


def _visible(element: Dict[str, Any]) -> bool:
    visible = element.get("visible", True)
    if isinstance(visible, str):
        return visible.lower() != "false"
    return bool(visible)


class HistoryParser:
    """Parses OSM history documents"""

    @staticmethod
    def parse_elements(data: Dict[str, Any]) -> List[Entity]:
        """
        Parse a history document into entity versions

        Deleted versions are kept (visible=False); they carry no coordinates,
        node list or members.

        Args:
            data: Document with an "elements" list

        Returns:
            Entity versions sorted nodes, ways, relations, then by id and version

        Raises:
            ValueError: If an element lacks a required field
        """
        entities: List[Entity] = []
        skipped = 0

        for element in data.get("elements", []):
            kind = element.get("type")
            if kind not in ("node", "way", "relation"):
                skipped += 1
                continue

            common = dict(
                id=int(_require(element, "id")),
                version=int(_require(element, "version")),
                timestamp=parse_timestamp(_require(element, "timestamp")),
                visible=_visible(element),
                tags=dict(element.get("tags") or {}),
                changeset=element.get("changeset"),
                uid=element.get("uid"),
                user=element.get("user"),
            )

            if kind == "node":
                lat = element.get("lat")
                lon = element.get("lon")
                if common["visible"] and (lat is None or lon is None):
                    raise ValueError(f"node #{common['id']} v{common['version']} has no coordinates")
                entities.append(NodeVersion(
                    lat=None if lat is None else float(lat),
                    lon=None if lon is None else float(lon),
                    **common
                ))
            elif kind == "way":
                entities.append(WayVersion(
                    nodes=[int(ref) for ref in element.get("nodes", [])],
                    **common
                ))
            else:
                members = [
                    RelationMember(
                        type=_require(member, "type"),
                        ref=int(_require(member, "ref")),
                        role=member.get("role", ""),
                    )
                    for member in element.get("members", [])
                ]
                entities.append(RelationVersion(members=members, **common))

        if skipped:
            logger.warning(f"Skipped {skipped} elements of unknown type")

        entities.sort(key=HistoryParser._stream_key)
        return entities

    @staticmethod
    def _stream_key(entity: Entity) -> Tuple[int, int, int]:
        return (_TYPE_ORDER[type(entity)], entity.id, entity.version)

    @staticmethod
    def load(path: Union[str, Path]) -> List[Entity]:
        """Load and parse a history document from a JSON file"""
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        entities = HistoryParser.parse_elements(data)
        logger.info(f"Loaded {len(entities)} entity versions from {path}")
        return entities
