"""
Sensor channels from the <extensions> block of a GPX track point.

Devices write the channels either directly under <extensions> or nested in a
vendor element, e.g.

    <extensions>
      <power>205</power>
      <gpxtpx:TrackPointExtension>
        <gpxtpx:atemp>8</gpxtpx:atemp>
        <gpxtpx:hr>160</gpxtpx:hr>
        <gpxtpx:cad>90</gpxtpx:cad>
      </gpxtpx:TrackPointExtension>
    </extensions>

Only the local tag name is matched, namespaces are ignored.
"""

import math
from typing import Optional

from lxml import etree

from trackscope.models.track import SensorExtension


TAG_MAPPINGS = {
    "cadence": ["cad", "cadence", "runcadence"],
    "heart_rate": ["hr", "heartrate", "heart_rate"],
    "power": ["power", "watts", "pwr"],
    "temperature": ["atemp", "temp", "temperature", "wtemp"],
}


def parse_extension(extensions: Optional[etree._Element]) -> SensorExtension:
    """
    Read the four optional channels, a channel that is missing or does not
    parse as a number is left out.
    """
    if extensions is None:
        return SensorExtension()

    values: dict[str, Optional[float]] = {name: None for name in TAG_MAPPINGS}
    for elem in extensions.iter():
        if not isinstance(elem.tag, str):
            # comments and processing instructions
            continue
        local = etree.QName(elem).localname.lower()
        for name, variants in TAG_MAPPINGS.items():
            if values[name] is None and local in variants:
                values[name] = _to_float(elem.text)
    return SensorExtension(**values)


def _to_float(text: Optional[str]) -> Optional[float]:
    if text is None:
        return None
    try:
        value = float(text.strip())
    except ValueError:
        return None
    return value if math.isfinite(value) else None
