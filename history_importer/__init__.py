"""
OSM history importer

Reconstructs the geometry of OpenStreetMap ways as they were at any point
in their history.
"""

__version__ = "0.1.0"
