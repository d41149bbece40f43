"""GPX 1.1 export for finished tracks."""

from __future__ import annotations

from typing import TYPE_CHECKING
from xml.sax.saxutils import escape

from geotrack.core.timeutils import isoformat_utc

if TYPE_CHECKING:
    from geotrack.core.models import Track
    from geotrack.storage.base import TrackStore

GPX_NAMESPACE = "http://www.topografix.com/GPX/1/1"

_QUOTE_ENTITIES = {"'": "&apos;", '"': "&quot;"}


def escape_xml(text: str) -> str:
    """Escape ``< > & ' "`` for element text and attribute values."""
    return escape(text, _QUOTE_ENTITIES)


def track_to_gpx(track: Track, creator: str = "GeoTrack") -> str:
    """Serialize a track to a GPX 1.1 document, one ``<trkpt>`` per point."""
    name = escape_xml(track.name)
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<gpx version="1.1" creator="{escape_xml(creator)}" xmlns="{GPX_NAMESPACE}">',
        "  <metadata>",
        f"    <name>{name}</name>",
        f"    <time>{isoformat_utc(track.start_time)}</time>",
        "  </metadata>",
        "  <trk>",
        f"    <name>{name}</name>",
        "    <trkseg>",
    ]
    for p in track.points:
        lines.append(f'      <trkpt lat="{p.latitude!r}" lon="{p.longitude!r}">')
        if p.altitude is not None:
            lines.append(f"        <ele>{p.altitude!r}</ele>")
        lines.append(f"        <time>{isoformat_utc(p.timestamp)}</time>")
        lines.append("      </trkpt>")
    lines.append("    </trkseg>")
    lines.append("  </trk>")
    lines.append("</gpx>\n")
    return "\n".join(lines)


def export_track_gpx(store: TrackStore, track_id: str, creator: str = "GeoTrack") -> str | None:
    """GPX for a finished track, or None when the id is unknown."""
    track = store.get_by_id(track_id)
    if track is None:
        return None
    return track_to_gpx(track, creator)
