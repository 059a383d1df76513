"""
Configuration settings for the OSM history importer
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional
import os

from dotenv import load_dotenv


ENV_PREFIX = "HISTORY_IMPORTER_"


@dataclass
class GeometryConfig:
    """Settings of the way geometry builder"""
    # Keep WGS84 lon/lat instead of reprojecting to mercator
    keep_latlng: bool = False

    # Per-node trace logging
    debug: bool = False

    # Log why nodes, coordinates or whole ways were skipped
    show_errors: bool = False

    # SRID stamped on every produced geometry (900913 = spherical mercator)
    srid: int = 900913

    # Tag kept lon/lat geometries with geographic_srid instead of srid
    srid_follows_projection: bool = False
    geographic_srid: int = 4326


@dataclass
class ProjectionConfig:
    """Coordinate reference systems used for reprojection"""
    source_crs: str = "EPSG:4326"  # WGS84 lat/lon
    target_crs: str = "EPSG:3857"  # Web mercator, same math as legacy 900913

    # Web mercator is undefined towards the poles
    max_latitude: float = 85.0511287798


@dataclass
class PolygonTagConfig:
    """Tags that turn a closed way into an area"""
    # Any of these keys (with a value other than "no") makes a closed way an area
    area_keys: List[str] = field(default_factory=lambda: [
        "aeroway",
        "amenity",
        "building",
        "building:part",
        "harbour",
        "historic",
        "landuse",
        "leisure",
        "man_made",
        "military",
        "office",
        "place",
        "power",
        "public_transport",
        "shop",
        "sport",
        "tourism",
        "wetland",
    ])

    # Keys that only describe areas for some of their values
    area_values: Dict[str, List[str]] = field(default_factory=lambda: {
        "natural": [
            "water", "wood", "scrub", "wetland", "beach", "heath",
            "grassland", "bare_rock", "sand", "glacier", "scree",
        ],
        "waterway": ["riverbank", "dock", "boatyard", "dam"],
        "highway": ["services", "rest_area", "pedestrian"],
        "railway": ["station", "turntable", "roundhouse", "platform"],
        "barrier": ["city_wall"],
        "boundary": ["protected_area", "national_park"],
    })


@dataclass
class ImporterConfig:
    """Importer configuration"""
    # "import" for a fresh history import, "update" for applying diffs
    mode: str = "import"

    geometry: GeometryConfig = field(default_factory=GeometryConfig)
    projection: ProjectionConfig = field(default_factory=ProjectionConfig)
    polygon_tags: PolygonTagConfig = field(default_factory=PolygonTagConfig)


# Global config instance
config = ImporterConfig()


def get_config() -> ImporterConfig:
    """Get global configuration"""
    return config


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(ENV_PREFIX + name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config_from_env(env_path: Optional[str] = None) -> ImporterConfig:
    """
    Build a configuration from HISTORY_IMPORTER_* environment variables.

    A .env file is loaded first (without overriding variables that are
    already set); unset variables keep their defaults.

    Args:
        env_path: Optional explicit path of the .env file

    Returns:
        Validated ImporterConfig
    """
    if env_path:
        load_dotenv(env_path, override=False)
    else:
        load_dotenv()

    result = ImporterConfig()
    result.mode = os.getenv(ENV_PREFIX + "MODE", result.mode)

    geometry = result.geometry
    geometry.keep_latlng = _env_flag("KEEP_LATLNG", geometry.keep_latlng)
    geometry.debug = _env_flag("DEBUG", geometry.debug)
    geometry.show_errors = _env_flag("SHOW_ERRORS", geometry.show_errors)
    geometry.srid_follows_projection = _env_flag(
        "SRID_FOLLOWS_PROJECTION", geometry.srid_follows_projection
    )
    srid = os.getenv(ENV_PREFIX + "SRID")
    if srid:
        try:
            geometry.srid = int(srid)
        except ValueError:
            raise ValueError(f"{ENV_PREFIX}SRID must be an integer, got {srid!r}")

    result.projection.target_crs = os.getenv(
        ENV_PREFIX + "TARGET_CRS", result.projection.target_crs
    )

    validate_config(result)
    return result


def validate_config(config: ImporterConfig) -> None:
    """
    Validate that all required configuration values are set.
    Raises ValueError if any required value is missing or invalid.
    """
    errors = []

    if config.mode not in ("import", "update"):
        errors.append(f"mode must be 'import' or 'update', got {config.mode!r}")

    if config.geometry is None:
        errors.append("geometry configuration is required but not set")
    elif config.geometry.srid is None or config.geometry.srid <= 0:
        errors.append(f"geometry.srid must be a positive integer, got {config.geometry.srid}")

    if config.projection is None:
        errors.append("projection configuration is required but not set")
    else:
        if not config.projection.source_crs:
            errors.append("projection.source_crs is required but not set")
        if not config.projection.target_crs:
            errors.append("projection.target_crs is required but not set")
        if not 0 < config.projection.max_latitude <= 90:
            errors.append(
                f"projection.max_latitude must be in (0, 90], got {config.projection.max_latitude}"
            )

    if config.polygon_tags is None:
        errors.append("polygon_tags configuration is required but not set")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ValueError(error_msg)
