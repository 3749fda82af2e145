"""
API routes for telemetry tracks.
"""

import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import numpy as np
from fastapi import APIRouter, HTTPException, Query

from trackscope.api.schemas import (
    BoundaryResponse,
    FolderInfoResponse,
    GeoPositionResponse,
    InputValueResponse,
    PlaybackDataResponse,
    ProgressResponse,
    SetFolderRequest,
    SondaResponse,
    TrackDataResponse,
    TrackMetadataResponse,
    TrackSummaryResponse,
)
from trackscope.models.boundary import InputValue, MinMax
from trackscope.models.sonda import Sonda
from trackscope.models.telemetry import Telemetry
from trackscope.models.track import GeoPosition
from trackscope.services.repository import get_repository


router = APIRouter(prefix="/tracks", tags=["tracks"])

# keeps offsets inside the int64 millisecond keys
MAX_OFFSET_MS = 2**53


def _finite_or_none(value: float) -> Optional[float]:
    """Convert NaN/inf to None for JSON serialization."""
    if value is None or not math.isfinite(value):
        return None
    return float(value)


def _clean_array(arr: np.ndarray) -> list[Optional[float]]:
    """Convert numpy array to list, replacing NaN with None."""
    return [None if math.isnan(x) else float(x) for x in arr]


def _as_utc(t: datetime) -> datetime:
    return t if t.tzinfo is not None else t.replace(tzinfo=timezone.utc)


def _build_boundary(boundary: MinMax) -> BoundaryResponse:
    return BoundaryResponse(
        min=_finite_or_none(boundary.min),
        max=_finite_or_none(boundary.max),
        mean=_finite_or_none(boundary.mean),
    )


def _build_input_value(value: Optional[InputValue]) -> Optional[InputValueResponse]:
    if value is None:
        return None
    return InputValueResponse(
        value=value.current,
        min=_finite_or_none(value.boundary.min),
        max=_finite_or_none(value.boundary.max),
        normalized=value.normalized,
    )


def _build_sonda(sonda: Sonda) -> SondaResponse:
    return SondaResponse(
        time=sonda.time.isoformat(),
        track_index=sonda.track_index,
        location=GeoPositionResponse(lat=sonda.location.latitude, lon=sonda.location.longitude),
        elapsed_ms=_build_input_value(sonda.elapsed_time),
        elevation=_build_input_value(sonda.elevation),
        grade=_build_input_value(sonda.grade),
        distance=_build_input_value(sonda.distance),
        speed=_build_input_value(sonda.speed),
        bearing=_build_input_value(sonda.bearing),
        cadence=_build_input_value(sonda.cadence),
        heart_rate=_build_input_value(sonda.heart_rate),
        power=_build_input_value(sonda.power),
        temperature=_build_input_value(sonda.temperature),
    )


def _get_track_or_404(track_id: str) -> Telemetry:
    telemetry = get_repository().get_track(track_id)
    if telemetry is None:
        raise HTTPException(status_code=404, detail=f"Track not found: {track_id}")
    return telemetry


@router.get("", response_model=list[TrackSummaryResponse])
async def list_tracks():
    """
    List all available tracks, newest first.
    """
    summaries = get_repository().list_tracks()
    return [TrackSummaryResponse(**vars(s)) for s in summaries]


@router.get("/{track_id}", response_model=TrackMetadataResponse)
async def get_track_metadata(track_id: str):
    """
    Get summary, center position and channel boundaries of a track.
    """
    telemetry = _get_track_or_404(track_id)
    summary = get_repository().get_summary(track_id)
    center = telemetry.center_geo_position

    return TrackMetadataResponse(
        **vars(summary),
        center=GeoPositionResponse(lat=center.latitude, lon=center.longitude),
        boundaries={name: _build_boundary(b) for name, b in telemetry.boundaries.items()},
    )


@router.get("/{track_id}/data", response_model=TrackDataResponse)
async def get_track_data(track_id: str):
    """
    Get every track point with its derived kinematics.

    Warning: This can be a large response for long recordings.
    Consider using /playback for visualization.
    """
    telemetry = _get_track_or_404(track_id)
    frame = telemetry.to_frame()

    return TrackDataResponse(
        id=track_id,
        point_count=len(frame),
        time=[t.isoformat() for t in frame["time"]],
        columns={
            column: _clean_array(frame[column].to_numpy(dtype=np.float64))
            for column in frame.columns
            if column != "time"
        },
    )


@router.get("/{track_id}/sonda", response_model=SondaResponse)
async def get_sonda(
    track_id: str,
    progress: Optional[float] = Query(None, allow_inf_nan=False, description="Progress between 0 and 100"),
    elapsed_ms: Optional[int] = Query(None, ge=-MAX_OFFSET_MS, le=MAX_OFFSET_MS, description="Milliseconds since the track start"),
    time: Optional[datetime] = Query(None, description="Absolute time (ISO-8601)"),
    distance: Optional[float] = Query(None, allow_inf_nan=False, description="Distance from the start in km"),
    lat: Optional[float] = Query(None, ge=-90.0, le=90.0, allow_inf_nan=False, description="Latitude of the closest point"),
    lon: Optional[float] = Query(None, ge=-180.0, le=180.0, allow_inf_nan=False, description="Longitude of the closest point"),
):
    """
    Get the interpolated snapshot at exactly one query point.
    """
    telemetry = _get_track_or_404(track_id)

    position = lat is not None or lon is not None
    selectors = [progress is not None, elapsed_ms is not None, time is not None, distance is not None, position]
    if sum(selectors) != 1:
        raise HTTPException(
            status_code=400,
            detail="Exactly one of progress, elapsed_ms, time, distance or lat/lon is required",
        )
    if position and (lat is None or lon is None):
        raise HTTPException(status_code=400, detail="Both lat and lon are required")

    if progress is not None:
        sonda = telemetry.sonda_for_progress(progress)
    elif elapsed_ms is not None:
        sonda = telemetry.sonda_for_relative_time(elapsed_ms)
    elif time is not None:
        sonda = telemetry.sonda_for_absolute_time(_as_utc(time))
    elif distance is not None:
        sonda = telemetry.sonda_for_distance(distance)
    else:
        sonda = telemetry.sonda_for_position(GeoPosition(lat, lon))

    if sonda is None:
        raise HTTPException(status_code=404, detail="No track point for this query")
    return _build_sonda(sonda)


@router.get("/{track_id}/progress", response_model=ProgressResponse)
async def get_progress(
    track_id: str,
    time: Optional[datetime] = Query(None, description="Absolute time (ISO-8601)"),
    distance: Optional[float] = Query(None, allow_inf_nan=False, description="Distance from the start in km"),
):
    """
    Map a time or a distance to progress between 0 and 100.
    """
    telemetry = _get_track_or_404(track_id)

    if (time is None) == (distance is None):
        raise HTTPException(status_code=400, detail="Exactly one of time or distance is required")

    if time is not None:
        progress = telemetry.progress_for_time(_as_utc(time))
    else:
        progress = telemetry.progress_for_distance(distance)
    return ProgressResponse(track_id=track_id, progress=progress)


@router.get("/{track_id}/playback", response_model=PlaybackDataResponse)
async def get_playback_data(
    track_id: str,
    start_ms: int = Query(0, ge=0, description="Start offset in milliseconds"),
    end_ms: Optional[int] = Query(None, description="End offset in milliseconds (defaults to track end)"),
    target_rate: float = Query(10.0, ge=1.0, le=100.0, description="Target sample rate for playback"),
):
    """
    Get evenly spaced snapshots between two elapsed-time offsets.
    """
    telemetry = _get_track_or_404(track_id)

    if end_ms is None:
        end_ms = telemetry.duration_ms
    else:
        end_ms = min(end_ms, telemetry.duration_ms)

    if len(telemetry) < 2 or start_ms >= end_ms:
        raise HTTPException(status_code=400, detail="Invalid time range")

    duration = end_ms - start_ms
    n_samples = int(duration / 1000.0 * target_rate) + 1
    offsets = np.linspace(start_ms, end_ms, n_samples)

    samples = [_build_sonda(telemetry.sonda_for_relative_time(int(round(offset)))) for offset in offsets]

    return PlaybackDataResponse(
        track_id=track_id,
        duration_ms=duration,
        sample_rate_hz=target_rate,
        samples=samples,
    )


# ============================================================================
# Folder Management Routes
# ============================================================================

folder_router = APIRouter(prefix="/folder", tags=["folder"])


@folder_router.get("", response_model=FolderInfoResponse)
async def get_folder_info():
    """Get information about the current data folder."""
    repo = get_repository()

    return FolderInfoResponse(
        path=str(repo.data_folder) if repo.data_folder else None,
        track_count=repo.track_count,
    )


@folder_router.post("", response_model=FolderInfoResponse)
async def set_folder(request: SetFolderRequest):
    """
    Set the data folder to scan for GPX files.

    This will clear the current cache and re-scan.
    """
    path = Path(request.path)
    if not path.exists():
        raise HTTPException(status_code=400, detail=f"Folder does not exist: {request.path}")
    if not path.is_dir():
        raise HTTPException(status_code=400, detail=f"Path is not a directory: {request.path}")

    count = get_repository().set_data_folder(path)

    return FolderInfoResponse(path=str(path), track_count=count)


@folder_router.post("/rescan", response_model=FolderInfoResponse)
async def rescan_folder():
    """
    Rescan the current data folder for new GPX files.
    """
    repo = get_repository()

    if repo.data_folder is None:
        raise HTTPException(status_code=400, detail="No data folder set")

    repo.clear_cache()
    count = repo.scan_folder(repo.data_folder)

    return FolderInfoResponse(path=str(repo.data_folder), track_count=count)
