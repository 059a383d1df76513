"""
OSM history data models

Data classes for single versions of OSM nodes, ways and relations
"""

from datetime import datetime
from typing import List, Dict, Optional
from dataclasses import dataclass, field


@dataclass
class NodeVersion:
    """One version of an OSM node (point)"""
    id: int
    version: int
    timestamp: datetime
    lat: Optional[float]
    lon: Optional[float]
    visible: bool = True
    tags: Dict[str, str] = field(default_factory=dict)
    changeset: Optional[int] = None
    uid: Optional[int] = None
    user: Optional[str] = None


@dataclass
class WayVersion:
    """One version of an OSM way (line or polygon)"""
    id: int
    version: int
    timestamp: datetime
    nodes: List[int]  # Ordered node references, duplicates allowed
    visible: bool = True
    tags: Dict[str, str] = field(default_factory=dict)
    changeset: Optional[int] = None
    uid: Optional[int] = None
    user: Optional[str] = None

    def is_closed(self) -> bool:
        """First and last node reference are the same node"""
        return len(self.nodes) >= 2 and self.nodes[0] == self.nodes[-1]


@dataclass
class RelationMember:
    """A member reference of a relation"""
    type: str
    ref: int
    role: str = ""


@dataclass
class RelationVersion:
    """One version of an OSM relation"""
    id: int
    version: int
    timestamp: datetime
    members: List[RelationMember]
    visible: bool = True
    tags: Dict[str, str] = field(default_factory=dict)
    changeset: Optional[int] = None
    uid: Optional[int] = None
    user: Optional[str] = None
