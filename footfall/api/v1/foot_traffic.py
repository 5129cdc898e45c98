"""
Foot Traffic area analysis API endpoints.

Provides endpoints for:
- Area analysis (estimated traffic, demographics, opportunity score)
- Analysis cache statistics
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from footfall.analytics.engine import FootTrafficAnalyzer
from footfall.analytics.exceptions import AnalysisCacheError, VenueDirectoryUnavailable
from footfall.analytics.models import AreaQuery
from footfall.core.config import MissingDatabaseURLError, MissingFoursquareAPIKeyError, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/foot-traffic", tags=["Foot Traffic"])

DIRECTORY_RETRY_AFTER_SECONDS = 60

_analyzer: Optional[FootTrafficAnalyzer] = None


def get_analyzer() -> FootTrafficAnalyzer:
    """
    Shared analyzer built from settings on first use.

    Override this dependency in tests to inject fakes.
    """
    global _analyzer
    if _analyzer is None:
        try:
            _analyzer = FootTrafficAnalyzer.from_settings(get_settings())
        except (MissingFoursquareAPIKeyError, MissingDatabaseURLError) as e:
            logger.error(f"Foot traffic analyzer is not configured: {e}")
            raise HTTPException(status_code=503, detail=str(e))
    return _analyzer


async def reset_analyzer() -> None:
    """Close and drop the shared analyzer (shutdown, tests)."""
    global _analyzer
    if _analyzer is not None:
        await _analyzer.close()
    _analyzer = None


# =============================================================================
# REQUEST MODELS
# =============================================================================


class AreaAnalysisRequest(BaseModel):
    """Request model for area analysis."""
    latitude: float = Field(..., ge=-90, le=90, description="Center latitude")
    longitude: float = Field(..., ge=-180, le=180, description="Center longitude")
    radius_meters: Optional[int] = Field(
        None, gt=0, le=50000, description="Search radius in meters (default from settings)"
    )


# =============================================================================
# AREA ANALYSIS ENDPOINTS
# =============================================================================


async def _run_analysis(
    analyzer: FootTrafficAnalyzer,
    latitude: float,
    longitude: float,
    radius_meters: Optional[int],
) -> Dict[str, Any]:
    try:
        query = AreaQuery(
            latitude=latitude,
            longitude=longitude,
            radius_meters=radius_meters or get_settings().default_radius_meters,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        analysis = await analyzer.analyze_area(query)
    except VenueDirectoryUnavailable as e:
        logger.error(f"Area analysis unavailable: {e}")
        raise HTTPException(
            status_code=503,
            detail=f"Venue directory unavailable: {e.message}",
            headers={"Retry-After": str(DIRECTORY_RETRY_AFTER_SECONDS)},
        )

    return analysis.to_dict()


@router.post("/area-analysis")
async def analyze_area(
    request: AreaAnalysisRequest,
    analyzer: FootTrafficAnalyzer = Depends(get_analyzer),
) -> Dict[str, Any]:
    """
    Analyze foot traffic around a point.

    Returns estimated hourly and weekly traffic, peak hours, a blended
    demographic profile, competition density, growth trends, an opportunity
    score (0-100) with insights, and a confidence level. Venues without
    measured visit statistics are estimated and `estimated_data` is true.

    **Example:**
    ```json
    {
        "latitude": 13.7563,
        "longitude": 100.5018,
        "radius_meters": 1000
    }
    ```
    """
    return await _run_analysis(
        analyzer, request.latitude, request.longitude, request.radius_meters
    )


@router.get("/area-analysis")
async def get_area_analysis(
    latitude: float = Query(..., ge=-90, le=90, description="Center latitude"),
    longitude: float = Query(..., ge=-180, le=180, description="Center longitude"),
    radius_meters: Optional[int] = Query(None, gt=0, le=50000, description="Search radius in meters"),
    analyzer: FootTrafficAnalyzer = Depends(get_analyzer),
) -> Dict[str, Any]:
    """Query-string variant of POST /area-analysis."""
    return await _run_analysis(analyzer, latitude, longitude, radius_meters)


@router.get("/cache/stats")
async def cache_stats(
    analyzer: FootTrafficAnalyzer = Depends(get_analyzer),
) -> Dict[str, Any]:
    """Analysis cache hit/miss counters and size."""
    if analyzer.cache is None:
        return {"backend": None}
    try:
        return await analyzer.cache.stats()
    except AnalysisCacheError as e:
        logger.warning(f"Cache stats unavailable: {e}")
        raise HTTPException(status_code=503, detail=f"Cache stats unavailable: {e}")
