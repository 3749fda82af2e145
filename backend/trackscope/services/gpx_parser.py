"""
GPX track reader.

Decodes a GPX document into an ordered list of TrackPoint. A sample looks like

    <trkpt lat="47.1512900" lon="8.7887940">
      <ele>902.4</ele>
      <time>2017-09-24T06:10:53Z</time>
      <extensions>...</extensions>
    </trkpt>

Reading is best effort: a track point with a missing or malformed latitude,
longitude or time is dropped, only an unreadable or malformed document fails
the whole load.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Optional, Union

from lxml import etree

from trackscope.models.track import GeoPosition, TrackPoint
from trackscope.services.extensions import parse_extension


logger = logging.getLogger(__name__)

TrackSource = Union[str, Path, bytes, BinaryIO]

TRACK_POINT_PATH = "{*}trk/{*}trkseg/{*}trkpt"


class GpxParser:
    """Parser for GPX 1.0/1.1 track files."""

    def __init__(self) -> None:
        self._xml_parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)

    def parse(self, source: TrackSource) -> list[TrackPoint]:
        root = self._read_document(source)

        points: list[TrackPoint] = []
        dropped = 0
        for node in root.iterfind(TRACK_POINT_PATH):
            point = self._parse_point(node)
            if point is None:
                dropped += 1
            else:
                points.append(point)

        if dropped:
            logger.debug(f"Dropped {dropped} malformed track points")
        return points

    def _read_document(self, source: TrackSource) -> etree._Element:
        try:
            if isinstance(source, bytes):
                return etree.fromstring(source, self._xml_parser)
            if isinstance(source, Path):
                source = str(source)
            return etree.parse(source, self._xml_parser).getroot()
        except etree.XMLSyntaxError as e:
            raise ValueError(f"Invalid GPX document: {e}") from e

    def _parse_point(self, node: etree._Element) -> Optional[TrackPoint]:
        try:
            lat = float(node.attrib["lat"])
            lon = float(node.attrib["lon"])
            time = parse_time(node.findtext("{*}time"))
        except (KeyError, TypeError, ValueError) as e:
            logger.debug(f"Skipping track point on line {node.sourceline}: {e}")
            return None

        return TrackPoint(
            position=GeoPosition(lat, lon),
            elevation=self._parse_elevation(node),
            time=time,
            extension=parse_extension(node.find("{*}extensions")),
        )

    def _parse_elevation(self, node: etree._Element) -> float:
        # some devices do not track the elevation
        text = node.findtext("{*}ele")
        if text is None:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return 0.0


def parse_time(text: Optional[str]) -> datetime:
    """
    Parse an ISO-8601 timestamp, assuming UTC when no offset is given.
    """
    if text is None or not text.strip():
        raise ValueError("missing time")
    parsed = datetime.fromisoformat(text.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def load_track_points(source: TrackSource) -> list[TrackPoint]:
    """
    Parse a GPX file path, raw bytes or binary stream into track points.
    """
    return GpxParser().parse(source)
