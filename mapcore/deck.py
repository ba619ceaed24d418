"""
pydeck rendering for heatmap shapes and complaint markers.
"""

import math
from typing import List, Optional, Sequence

import pandas as pd
import pydeck as pdk

from mapcore.heatmap import Shape
from mapcore.markers import Marker
from mapcore.models import ViewportRegion

MAP_STYLE = "https://basemaps.cartocdn.com/gl/dark-matter-gl-style/style.json"

SHAPE_COLUMNS = [
    "cluster_id", "lat", "lon", "radius", "count", "intensity",
    "fill", "stroke", "stroke_width", "avg_priority",
]
MARKER_COLUMNS = [
    "id", "lat", "lon", "title", "status", "category",
    "priority", "color", "description", "high_priority",
]


def _hex_to_rgb(value: str) -> List[int]:
    value = value.lstrip("#")
    return [int(value[i:i + 2], 16) for i in (0, 2, 4)]


def shapes_to_frame(shapes: Sequence[Shape]) -> pd.DataFrame:
    rows = []
    for s in shapes:
        rows.append({
            "cluster_id": s.cluster.id,
            "lat": s.latitude,
            "lon": s.longitude,
            "radius": s.radius_meters,
            "count": s.cluster.density,
            "intensity": round(s.intensity, 3),
            "fill": s.fill_color.to_deck(),
            "stroke": s.stroke_color.to_deck(),
            "stroke_width": s.stroke_width,
            "avg_priority": round(s.cluster.avg_priority) if s.cluster.avg_priority is not None else None,
        })
    return pd.DataFrame(rows, columns=SHAPE_COLUMNS)


def markers_to_frame(markers: Sequence[Marker]) -> pd.DataFrame:
    rows = [{
        "id": m.point.id,
        "lat": m.latitude,
        "lon": m.longitude,
        "title": m.point.title,
        "status": m.point.status.value,
        "category": m.point.category,
        "priority": round(m.point.priority_score),
        "color": _hex_to_rgb(m.color) + [230],
        "description": m.description,
        "high_priority": m.high_priority,
    } for m in markers]
    return pd.DataFrame(rows, columns=MARKER_COLUMNS)


def region_to_view_state(region: ViewportRegion) -> pdk.ViewState:
    """A longitude span of 360 degrees is zoom 0; each halving adds one level."""
    delta = region.longitude_delta if region.longitude_delta > 0 else 0.1
    zoom = max(1.0, min(20.0, math.log2(360.0 / delta)))
    return pdk.ViewState(
        latitude=region.latitude,
        longitude=region.longitude,
        zoom=round(zoom, 2),
    )


def build_deck(
    shapes: Sequence[Shape],
    region: ViewportRegion,
    markers: Optional[Sequence[Marker]] = None,
) -> pdk.Deck:
    layers = [
        pdk.Layer(
            "ScatterplotLayer",
            shapes_to_frame(shapes),
            get_position=["lon", "lat"],
            get_radius="radius",
            radius_units="meters",
            get_fill_color="fill",
            get_line_color="stroke",
            get_line_width="stroke_width",
            line_width_units="pixels",
            stroked=True,
            filled=True,
            pickable=True,
        )
    ]
    if markers:
        layers.append(pdk.Layer(
            "ScatterplotLayer",
            markers_to_frame(markers),
            get_position=["lon", "lat"],
            get_fill_color="color",
            get_radius=6,
            radius_units="pixels",
            pickable=True,
        ))

    return pdk.Deck(
        layers=layers,
        initial_view_state=region_to_view_state(region),
        map_style=MAP_STYLE,
        tooltip={"text": "{count} complaint(s)\nIntensity: {intensity}"},
    )
