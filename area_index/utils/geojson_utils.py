"""GeoJSON conversion for area polygon parts."""

import logging
from typing import Any, Dict, List

import geojson
from shapely.geometry import MultiPolygon, shape
from shapely.geometry import Polygon as ShapelyPolygon

from ..models.geometry import Polygon

logger = logging.getLogger(__name__)


def validate_geojson_geometry(geojson_dict: Dict[str, Any]) -> bool:
    """Validate GeoJSON structure (ring closure, position arity)."""
    try:
        obj = geojson.loads(geojson.dumps(geojson_dict))
    except (TypeError, ValueError) as e:
        logger.warning(f"GeoJSON validation failed: {e}")
        return False
    # Unknown "type" values come back as plain dicts
    return bool(getattr(obj, "is_valid", False))


def _geometries(geojson_dict: Dict[str, Any]) -> List[Dict[str, Any]]:
    kind = geojson_dict.get("type")
    if kind == "FeatureCollection":
        return [f["geometry"] for f in geojson_dict.get("features", []) if f.get("geometry")]
    if kind == "Feature":
        geometry = geojson_dict.get("geometry")
        return [geometry] if geometry else []
    if kind == "GeometryCollection":
        return list(geojson_dict.get("geometries", []))
    return [geojson_dict]


def polygons_from_geojson(geojson_dict: Dict[str, Any], srid: int) -> List[Polygon]:
    """
    Area polygon parts from a GeoJSON Polygon, MultiPolygon, Feature or FeatureCollection.

    Every polygon of a MultiPolygon becomes its own part, as every feature of a
    multi-feature shapefile does.

    Raises:
        ValueError: If the GeoJSON is malformed or holds non-polygonal geometry
    """
    if not validate_geojson_geometry(geojson_dict):
        raise ValueError("Invalid GeoJSON geometry")

    parts: List[Polygon] = []
    for geometry in _geometries(geojson_dict):
        geom = shape(geometry)
        if isinstance(geom, ShapelyPolygon):
            parts.append(Polygon.from_shapely(geom, srid))
        elif isinstance(geom, MultiPolygon):
            parts.extend(Polygon.from_shapely(g, srid) for g in geom.geoms)
        else:
            raise ValueError(f"Unsupported geometry type for an area: {geom.geom_type}")
    return parts


def polygons_to_geojson(polygons: List[Polygon]) -> Dict[str, Any]:
    """Area parts as a GeoJSON MultiPolygon."""
    coordinates = []
    for polygon in polygons:
        rings = [[list(c) for c in polygon.exterior]]
        rings.extend([list(c) for c in ring] for ring in polygon.interiors)
        coordinates.append(rings)
    return {"type": "MultiPolygon", "coordinates": coordinates}
