"""
Track Repository - manages loading and caching of telemetry tracks.

Tracks are GPX files in a data folder, parsed on first access and kept in
memory afterwards. The bundled demo track is always available under the id
"sample".
"""

import hashlib
import logging
import os
from pathlib import Path
from typing import Optional

from trackscope.models.telemetry import Telemetry, TrackSummary


logger = logging.getLogger(__name__)


SAMPLE_TRACK_ID = "sample"
DEFAULT_SAMPLE_GPX = Path(__file__).resolve().parent.parent / "resources" / "sample.gpx"
SAMPLE_GPX = Path(os.getenv("TRACKSCOPE_SAMPLE_GPX", str(DEFAULT_SAMPLE_GPX)))


class TrackRepository:
    """
    Repository for telemetry tracks.

    Reads GPX files from a folder and caches parsed tracks in memory.
    """

    def __init__(self, data_folder: Optional[Path] = None, sample_resource: Path = SAMPLE_GPX):
        """
        Initialize the repository.

        Args:
            data_folder: Folder containing GPX files. If None, must be set later.
            sample_resource: GPX file served as the demo track.
        """
        self._data_folder: Optional[Path] = data_folder
        self._sample_resource = sample_resource
        self._sample: Optional[Telemetry] = None
        self._cache: dict[str, Telemetry] = {}
        self._index: dict[str, Path] = {}  # id -> filepath mapping

        if data_folder is not None:
            self.scan_folder(data_folder)

    @property
    def data_folder(self) -> Optional[Path]:
        return self._data_folder

    @property
    def track_count(self) -> int:
        return len(self._index)

    def set_data_folder(self, folder: Path) -> int:
        """
        Set the data folder and scan for GPX files.

        Returns:
            Number of GPX files found
        """
        self._data_folder = folder
        self._cache.clear()
        self._index.clear()
        return self.scan_folder(folder)

    def scan_folder(self, folder: Path) -> int:
        """
        Scan a folder for GPX files and build the index.

        Returns:
            Number of GPX files found
        """
        if not folder.exists():
            logger.warning(f"Data folder does not exist: {folder}")
            return 0

        count = 0
        for gpx_file in sorted(folder.glob("*.gpx")):
            if gpx_file.is_file():
                track_id = self._filepath_to_id(gpx_file)
                self._index[track_id] = gpx_file
                count += 1
                logger.debug(f"Indexed track: {track_id} -> {gpx_file.name}")

        logger.info(f"Scanned {count} GPX files in {folder}")
        return count

    def list_tracks(self) -> list[TrackSummary]:
        """
        List all indexed tracks, newest first.
        """
        summaries = []
        for track_id, filepath in self._index.items():
            telemetry = self.get_track(track_id)
            if telemetry is not None:
                summaries.append(TrackSummary.from_telemetry(track_id, filepath, telemetry))

        summaries.sort(key=lambda s: (s.start_time or "", s.name), reverse=True)
        return summaries

    def get_track(self, track_id: str) -> Optional[Telemetry]:
        """
        Get a track by ID.

        Returns:
            Telemetry if found and readable, None otherwise
        """
        if track_id == SAMPLE_TRACK_ID:
            return self.get_sample()

        if track_id in self._cache:
            return self._cache[track_id]

        if track_id not in self._index:
            return None

        filepath = self._index[track_id]
        try:
            telemetry = Telemetry.load(filepath)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load track {filepath}: {e}")
            return None

        self._cache[track_id] = telemetry
        logger.debug(f"Loaded and cached track: {track_id}")
        return telemetry

    def get_summary(self, track_id: str) -> Optional[TrackSummary]:
        telemetry = self.get_track(track_id)
        if telemetry is None:
            return None
        source = self._sample_resource if track_id == SAMPLE_TRACK_ID else self._index[track_id]
        return TrackSummary.from_telemetry(track_id, source, telemetry)

    def get_sample(self) -> Telemetry:
        """The demo track, empty when the resource cannot be read."""
        if self._sample is None:
            self._sample = Telemetry.sample(self._sample_resource)
        return self._sample

    def clear_cache(self) -> None:
        """Clear the in-memory cache."""
        self._cache.clear()
        logger.info("Track cache cleared")

    def _filepath_to_id(self, filepath: Path) -> str:
        """Generate a consistent ID from filepath."""
        stat = filepath.stat()
        id_string = f"{filepath.name}_{stat.st_size}_{stat.st_mtime}"
        return hashlib.sha256(id_string.encode()).hexdigest()[:16]


# Global repository instance (set up by app initialization)
_repository: Optional[TrackRepository] = None


def get_repository() -> TrackRepository:
    """Get the global repository instance."""
    global _repository
    if _repository is None:
        _repository = TrackRepository()
    return _repository


def init_repository(data_folder: Path) -> TrackRepository:
    """Initialize the global repository with a data folder."""
    global _repository
    _repository = TrackRepository(data_folder)
    return _repository
