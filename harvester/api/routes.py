"""REST API routes for the harvester.

Exposes the pure, browser-free operations:
- Reconciling records collected elsewhere
- Scoring extraction confidence
- Finding the record array inside an embedded data object
- Listing and detecting supported sites
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from harvester.config.settings import ConfidenceConfig, ReconcileConfig, RecordArrayConfig
from harvester.extraction.confidence import is_low_confidence, score
from harvester.extraction.discovery import find_record_array
from harvester.reconcile.reconciler import ReconcileStatistics, reconcile, reconcile_statistics
from harvester.sites.registry import get_profile, supported_sites

router = APIRouter()


# --- Request/Response Models ---


class ReconcileRequest(BaseModel):
    records: list[dict[str, Any]] = Field(default_factory=list)
    derive_postcode_from_address: bool = True


class ReconcileResponse(BaseModel):
    records: list[dict[str, Any]]
    statistics: ReconcileStatistics


class ConfidenceRequest(BaseModel):
    records: list[dict[str, Any]] = Field(default_factory=list)


class ConfidenceResponse(BaseModel):
    confidence: int
    low_confidence: bool
    record_count: int


class RecordArrayRequest(BaseModel):
    """An embedded data object as read from a page, e.g. ``window.PAGE_MODEL``."""

    data: Any = None
    max_depth: int | None = Field(default=None, ge=0)


class RecordArrayResponse(BaseModel):
    found: bool
    records: list[Any] = Field(default_factory=list)


class SiteInfo(BaseModel):
    name: str
    hostnames: list[str]
    base_url: str
    listings_per_page: int
    pagination: str


# --- Endpoints ---


@router.post("/reconcile", response_model=ReconcileResponse)
async def reconcile_records(request: ReconcileRequest) -> ReconcileResponse:
    """Merge records that describe the same entity across sources."""
    config = ReconcileConfig(derive_postcode_from_address=request.derive_postcode_from_address)
    reconciled = reconcile(request.records, config)
    return ReconcileResponse(
        records=reconciled,
        statistics=reconcile_statistics(request.records, reconciled),
    )


@router.post("/confidence", response_model=ConfidenceResponse)
async def score_confidence(request: ConfidenceRequest) -> ConfidenceResponse:
    config = ConfidenceConfig()
    percent = score(request.records, config)
    return ConfidenceResponse(
        confidence=percent,
        low_confidence=is_low_confidence(percent, config),
        record_count=len(request.records),
    )


@router.post("/record-array", response_model=RecordArrayResponse)
async def locate_record_array(request: RecordArrayRequest) -> RecordArrayResponse:
    array = find_record_array(request.data, request.max_depth, RecordArrayConfig())
    if array is None:
        return RecordArrayResponse(found=False)
    return RecordArrayResponse(found=True, records=array)


def _site_info(name: str) -> SiteInfo:
    profile = get_profile(name)
    return SiteInfo(
        name=profile.name,
        hostnames=profile.hostnames,
        base_url=profile.base_url,
        listings_per_page=profile.listings_per_page,
        pagination=profile.pagination,
    )


@router.get("/sites", response_model=list[SiteInfo])
async def list_sites() -> list[SiteInfo]:
    return [_site_info(name) for name in supported_sites()]


@router.get("/sites/detect", response_model=SiteInfo)
async def detect(url: str = Query(..., min_length=1)) -> SiteInfo:
    """Resolve a search URL or site name to its profile."""
    try:
        return _site_info(url)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
