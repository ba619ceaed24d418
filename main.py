"""
Civic Complaint Map - command line demo.

Loads complaints from the backend (or a JSON file of records), prints the
heatmap clusters as an ASCII density table, the status counts, and
optionally the ranked results for one search.

    python main.py --api-url http://localhost:5000 --admin --search pothole
    python main.py --records complaints.json --search kochi --no-geocode
"""

import argparse
import json
import logging
import sys
from dataclasses import replace

from mapcore.config import MapSettings
from mapcore.models import MapVariant, NoticeLevel
from mapcore.session import ComplaintMapSession
from maploaders.complaint_store import ComplaintStore
from maploaders.geocoder import Geocoder

log = logging.getLogger("main")

DENSITY_CHARS = [(0.8, "#"), (0.6, "%"), (0.4, "+"), (0.2, ":")]


def density_char(value: float) -> str:
    for threshold, char in DENSITY_CHARS:
        if value > threshold:
            return char
    return "."


def load_records(path: str):
    with open(path) as f:
        payload = json.load(f)
    if isinstance(payload, dict):
        payload = payload.get("complaints", [])
    return payload if isinstance(payload, list) else []


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Civic Complaint Map heatmap and search demo")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--api-url", help="Complaint backend base URL")
    source.add_argument("--records", help="JSON file with complaint records")
    parser.add_argument("--admin", action="store_true", help="Use the priority-aware admin map")
    parser.add_argument("--status", default="all", help="Admin status filter (pending, in_progress, resolved, ...)")
    parser.add_argument("--search", help="Run one search and print the ranked results")
    parser.add_argument("--no-geocode", action="store_true", help="Skip the online geocoding provider")
    parser.add_argument("--radius", type=float, help="Clustering radius in degrees")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s │ %(name)-20s │ %(levelname)-8s │ %(message)s',
        datefmt='%H:%M:%S',
    )
    args = parse_args(argv)

    settings = MapSettings.from_env()
    if args.radius is not None:
        if args.radius > 0:
            settings = replace(settings, cluster_radius_deg=args.radius)
        else:
            log.warning(f"Ignoring non-positive radius {args.radius}")

    variant = MapVariant.ADMIN if args.admin else MapVariant.CITIZEN
    geocoder = None if args.no_geocode else Geocoder(settings)
    store = None if args.records else ComplaintStore(args.api_url, settings)

    session = ComplaintMapSession(variant, store=store, geocoder=geocoder, settings=settings)
    try:
        if args.records:
            session.load_points(load_records(args.records))
        else:
            session.refresh_points()
        session.set_status_filter(args.status)

        # 1. Clusters
        shapes = session.shapes()
        print(f"\n=== COMPLAINT HEATMAP ({variant.value}) ===")
        print("Scale: . (sparse) -> # (dense)\n")
        for shape in shapes:
            cluster = shape.cluster
            line = (
                f" {density_char(shape.intensity)}  {cluster.id:<12} "
                f"({shape.latitude:.4f}, {shape.longitude:.4f})  "
                f"{cluster.density:>3} complaint(s)  r={shape.radius_meters:.0f}m"
            )
            if cluster.avg_priority is not None:
                line += f"  avg priority {round(cluster.avg_priority)}"
            print(line)
        if not shapes:
            print(" (no complaints with coordinates)")

        # 2. Stats
        stats = session.stats()
        print(f"\nTotal: {stats.total} | Pending: {stats.pending} | "
              f"In progress: {stats.in_progress} | Resolved: {stats.resolved}")
        if variant is MapVariant.ADMIN:
            print(f"High priority: {stats.high_priority}")

        # 3. Search
        if args.search:
            session.on_query_changed(args.search)
            outcome = session.submit()
            print(f"\n=== SEARCH: {args.search} ===")
            if outcome is not None:
                for i, result in enumerate(outcome.results, 1):
                    print(f" {i}. [{result.kind.value:<9}] {result.title}  ({result.subtitle})")
                for notice in outcome.notices:
                    marker = "!" if notice.level is not NoticeLevel.INFO else "-"
                    print(f" {marker} {notice.title} {notice.message}")
                if outcome.auto_select is not None:
                    region = session.select(outcome.auto_select)
                    print(f"\nCentered on {region.latitude:.4f}, {region.longitude:.4f}")
    finally:
        session.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
