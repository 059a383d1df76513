"""
Historical node coordinate store

Keeps every version of every node so the coordinate of a node can be
looked up as it was at an arbitrary point in time.
"""

from bisect import bisect_right, insort
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol, Tuple

from loguru import logger

from .models import NodeVersion


@dataclass(frozen=True)
class NodeInfo:
    """Coordinate of a node, valid from the timestamp it was stored with"""
    lon: float
    lat: float


class Nodestore(Protocol):
    """What the geometry builder needs from a coordinate store"""

    def lookup(self, node_id: int, timestamp: datetime) -> Optional[NodeInfo]:
        ...


def as_utc(timestamp: datetime) -> datetime:
    """Aware UTC datetime; naive timestamps are taken as UTC"""
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


# (timestamp, version, coordinate or None for a deleted version)
_Entry = Tuple[datetime, int, Optional[NodeInfo]]


class MemoryNodestore:
    """
    In-memory store of all node versions, ordered by timestamp per node.

    Lookups never change the store.
    """

    def __init__(self):
        self._nodes: Dict[int, List[_Entry]] = {}
        self._version_count = 0

    def record(
        self,
        node_id: int,
        version: int,
        timestamp: datetime,
        lon: Optional[float] = None,
        lat: Optional[float] = None,
        visible: bool = True,
    ):
        """
        Store one version of a node.

        Deleted versions (visible=False) or versions without coordinates
        are stored as gaps: lookups inside them find nothing.
        """
        info = None
        if visible and lon is not None and lat is not None:
            info = NodeInfo(lon=float(lon), lat=float(lat))

        entries = self._nodes.setdefault(node_id, [])
        entry = (as_utc(timestamp), version, info)
        if entries and entries[-1][:2] > entry[:2]:
            logger.debug(f"node #{node_id} v{version} stored out of order")
            insort(entries, entry, key=lambda e: e[:2])
        else:
            entries.append(entry)
        self._version_count += 1

    def record_node(self, node: NodeVersion):
        """Store a parsed node version"""
        self.record(
            node.id,
            node.version,
            node.timestamp,
            lon=node.lon,
            lat=node.lat,
            visible=node.visible,
        )

    def lookup(self, node_id: int, timestamp: datetime) -> Optional[NodeInfo]:
        """
        Find the coordinate of a node at a given time

        Args:
            node_id: Node id
            timestamp: Point in time to resolve the node at

        Returns:
            NodeInfo of the newest version not younger than timestamp, or None
            if the node did not exist yet, was deleted, or is unknown
        """
        entries = self._nodes.get(node_id)
        if not entries:
            return None

        idx = bisect_right(entries, as_utc(timestamp), key=lambda e: e[0])
        if idx == 0:
            return None
        return entries[idx - 1][2]

    def timestamps(self, node_id: int) -> List[datetime]:
        """Timestamps of all stored versions of a node, oldest first"""
        return [e[0] for e in self._nodes.get(node_id, [])]

    @property
    def version_count(self) -> int:
        return self._version_count

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: int) -> bool:
        return node_id in self._nodes
