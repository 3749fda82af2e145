"""
API schemas (Pydantic models) for request/response validation.
"""

from typing import Optional

from pydantic import BaseModel


# ============================================================================
# Track Schemas
# ============================================================================

class TrackSummaryResponse(BaseModel):
    """Summary of a track for listing."""
    id: str
    name: str
    source_file: str
    point_count: int
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    duration_ms: int
    total_distance_km: float
    elevation_gain_m: float


class GeoPositionResponse(BaseModel):
    """Latitude/longitude in degrees."""
    lat: float
    lon: float


class BoundaryResponse(BaseModel):
    """Observed range of a channel, null where nothing was sampled."""
    min: Optional[float] = None
    max: Optional[float] = None
    mean: Optional[float] = None


class TrackMetadataResponse(TrackSummaryResponse):
    """Full metadata for a track."""
    center: GeoPositionResponse
    boundaries: dict[str, BoundaryResponse]


class TrackDataResponse(BaseModel):
    """Per-point columns of a track, absent sensor values are null."""
    id: str
    point_count: int
    time: list[str]
    columns: dict[str, list[Optional[float]]]


# ============================================================================
# Query Schemas
# ============================================================================

class InputValueResponse(BaseModel):
    """A value with the range of its channel."""
    value: float
    min: Optional[float] = None
    max: Optional[float] = None
    normalized: float


class SondaResponse(BaseModel):
    """Interpolated snapshot at a query point."""
    time: str
    track_index: int
    location: GeoPositionResponse
    elapsed_ms: InputValueResponse
    elevation: InputValueResponse
    grade: InputValueResponse
    distance: InputValueResponse
    speed: InputValueResponse
    bearing: InputValueResponse
    cadence: Optional[InputValueResponse] = None
    heart_rate: Optional[InputValueResponse] = None
    power: Optional[InputValueResponse] = None
    temperature: Optional[InputValueResponse] = None


class ProgressResponse(BaseModel):
    """Progress between 0 and 100."""
    track_id: str
    progress: float


class PlaybackDataResponse(BaseModel):
    """Evenly spaced snapshots for playback."""
    track_id: str
    duration_ms: int
    sample_rate_hz: float
    samples: list[SondaResponse]


# ============================================================================
# Folder Management Schemas
# ============================================================================

class SetFolderRequest(BaseModel):
    """Request to set the data folder."""
    path: str


class FolderInfoResponse(BaseModel):
    """Information about the current data folder."""
    path: Optional[str]
    track_count: int
