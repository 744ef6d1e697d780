#!/usr/bin/env python3
"""
Area Index CLI
Simple command-line interface for building and querying containment indexes
from GeoJSON area files
"""
import sys
import json
import threading
import time
from pathlib import Path

# Add the project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from area_index.config import Settings
from area_index.exceptions import AreaIndexError
from area_index.models import BoundingBox, Point
from area_index.services.area_service import AreaIndexService
from area_index.services.cell_classifier import CellClassifier
from area_index.services.thread_pool_service import ThreadPoolService
from area_index.utils.geojson_utils import polygons_from_geojson


def show_help():
    print("""
Area Index CLI
==============

Commands:
  estimate <geojson> <srid> [cell_size]         - Cell count a build would classify
  build    <geojson> <srid> [cell_size]         - Build the index and print its statistics
  query    <geojson> <srid> <points> [cell_size] - Build, then test points from a JSON file
                                                  ([[x, y], ...] or a GeoJSON FeatureCollection of Points)
  help                                          - Show this help message

Examples:
  python scripts/area_index_cli.py estimate data/site.geojson 28356 50
  python scripts/area_index_cli.py build data/site.geojson 28356 50
  python scripts/area_index_cli.py query data/site.geojson 28356 data/points.json 50
""")


def _load_json(path):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _load_points(path, srid):
    data = _load_json(path)
    if isinstance(data, dict) and data.get("type") == "FeatureCollection":
        coords = [f["geometry"]["coordinates"] for f in data["features"]]
    else:
        coords = data
    return [Point(x=c[0], y=c[1], srid=srid) for c in coords]


def _cell_size(argv, position, settings):
    return float(argv[position]) if len(argv) > position else settings.DEFAULT_CELL_SIZE


def _build_service(settings, thread_pool):
    return AreaIndexService.from_settings(settings, thread_pool=thread_pool)


def cmd_estimate(argv, settings):
    """Estimate the cell count without building"""
    polygons = polygons_from_geojson(_load_json(argv[0]), int(argv[1]))
    cell_size = _cell_size(argv, 2, settings)
    if not polygons:
        print("No polygon parts found: the index would be empty")
        return
    estimated = CellClassifier.estimate_cell_count(BoundingBox.from_polygons(polygons), cell_size)
    print(f"📐 {len(polygons)} polygon parts at cell size {cell_size}")
    print(f"Estimated cells: {estimated:,} (limit {settings.MAX_CELL_COUNT:,})")
    if estimated > settings.MAX_CELL_COUNT:
        print("⚠️  Over the limit; choose a coarser cell size")


def cmd_build(argv, settings, thread_pool):
    """Build an index and report statistics"""
    srid = int(argv[1])
    polygons = polygons_from_geojson(_load_json(argv[0]), srid)
    service = _build_service(settings, thread_pool)

    print(f"🔨 Building index for {argv[0]} ({len(polygons)} parts, SRID {srid})...")
    start = time.perf_counter()
    area = service.create_area(Path(argv[0]).stem, 0, srid, polygons,
                               _cell_size(argv, 2, settings), cancel_event=threading.Event())
    print(f"Built in {time.perf_counter() - start:.2f}s")
    print(area.get_details(indent_level=1))
    print(json.dumps(service.get_stats(area.id), indent=2))
    return service, area


def cmd_query(argv, settings, thread_pool):
    """Build an index, then test a batch of points"""
    srid = int(argv[1])
    service, area = cmd_build([argv[0], argv[1]] + argv[3:4], settings, thread_pool)
    points = _load_points(argv[2], srid)

    start = time.perf_counter()
    result = service.evaluate(area.id, points)
    elapsed = time.perf_counter() - start

    print(f"📍 {len(points)} points in {elapsed * 1000:.1f}ms")
    print(f"  inside:       {sum(result.results)}")
    print(f"  fast path:    {result.fast_path}")
    print(f"  exact tests:  {result.exact_tests}")
    print(f"  no cell:      {result.outside}")
    for point, inside in zip(points[:20], result.results):
        print(f"  {point}: {'inside' if inside else 'outside'}")
    if len(points) > 20:
        print(f"  ... {len(points) - 20} more")


def main():
    """Main CLI function"""
    if len(sys.argv) < 2:
        show_help()
        return

    command = sys.argv[1].lower()
    argv = sys.argv[2:]
    required = {"estimate": 2, "build": 2, "query": 3}

    if command == "help" or command not in required:
        if command != "help":
            print(f"Unknown command: {command}")
        show_help()
        return
    if len(argv) < required[command]:
        print(f"'{command}' needs at least {required[command]} arguments")
        show_help()
        return

    settings = Settings()
    thread_pool = ThreadPoolService(cpu_workers=settings.build_workers)
    try:
        if command == "estimate":
            cmd_estimate(argv, settings)
        elif command == "build":
            cmd_build(argv, settings, thread_pool)
        elif command == "query":
            cmd_query(argv, settings, thread_pool)
    except (AreaIndexError, ValueError) as e:
        print(f"\n❌ {e}")
        sys.exit(1)
    finally:
        thread_pool.close()


if __name__ == "__main__":
    main()
