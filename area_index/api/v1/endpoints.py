import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from ...config import Settings
from ...dependencies import (
    get_area_service,
    get_service_container,
    get_settings_cached,
    get_thread_pool_service,
)
from ...exceptions import (
    AreaIndexError,
    AreaNotFoundError,
    ConfigurationError,
    IndexNotFoundError,
    PreconditionError,
    ResourceExhaustionError,
    SRIDMismatchError,
)
from ...models.api_models import (
    AreaResponse,
    ContainsRequest,
    ContainsResponse,
    CreateAreaRequest,
    DeleteShapefileResponse,
    EstimateResponse,
)
from ...models.area import Area
from ...services.area_service import AreaIndexService
from ...services.thread_pool_service import ThreadPoolService
from ...utils.geojson_utils import polygons_from_geojson

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)

router = APIRouter(prefix="/v1", tags=["areas"])


def _contains_rate_limit() -> str:
    return get_service_container().settings.CONTAINS_RATE_LIMIT


def _http_error(e: AreaIndexError) -> HTTPException:
    """Map index errors onto HTTP status codes."""
    if isinstance(e, (AreaNotFoundError, IndexNotFoundError)):
        return HTTPException(status_code=404, detail=e.message)
    if isinstance(e, SRIDMismatchError):
        return HTTPException(status_code=422, detail={
            "error": "srid_mismatch",
            "message": e.message,
            "expected_srid": e.expected,
            "actual_srid": e.actual,
            "point_index": e.point_index,
        })
    if isinstance(e, (PreconditionError, ConfigurationError)):
        return HTTPException(status_code=422, detail=e.message)
    if isinstance(e, ResourceExhaustionError):
        return HTTPException(status_code=413, detail=e.message)
    return HTTPException(status_code=500, detail=e.message)


def _area_response(area: Area, service: AreaIndexService) -> AreaResponse:
    return AreaResponse(
        id=area.id,
        name=area.name,
        srid=area.srid,
        shapefile_id=area.shapefile_id,
        bounding_box=area.bounding_box,
        index=service.get_stats(area.id),
    )


@router.post("/areas", response_model=AreaResponse, status_code=201,
             summary="Create an area and build its containment index")
@limiter.limit("10/minute")
async def create_area(
    request: Request,
    body: CreateAreaRequest,
    service: AreaIndexService = Depends(get_area_service),
    pool: ThreadPoolService = Depends(get_thread_pool_service),
) -> AreaResponse:
    try:
        polygons = polygons_from_geojson(body.geometry, body.srid)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        # Index builds are CPU bound; keep them off the event loop
        area = await pool.run_job(
            service.create_area, body.name, body.shapefile_id, body.srid, polygons, body.cell_size
        )
    except AreaIndexError as e:
        logger.warning(f"Area creation failed: {e.message}")
        raise _http_error(e)

    return _area_response(area, service)


@router.get("/areas", response_model=List[AreaResponse], summary="List areas")
async def list_areas(
    srid: Optional[int] = Query(None, ge=0),
    shapefile_id: Optional[int] = None,
    service: AreaIndexService = Depends(get_area_service),
) -> List[AreaResponse]:
    if srid is not None:
        areas = service.area_store.get_for_srid(srid)
    else:
        areas = service.area_store.get_all()
    if shapefile_id is not None:
        areas = [a for a in areas if a.shapefile_id == shapefile_id]
    return [_area_response(a, service) for a in areas]


@router.get("/areas/{area_id}", response_model=AreaResponse, summary="Area details and index statistics")
async def get_area(area_id: int, service: AreaIndexService = Depends(get_area_service)) -> AreaResponse:
    try:
        area = service.area_store.get(area_id)
    except AreaIndexError as e:
        raise _http_error(e)
    return _area_response(area, service)


@router.get("/areas/{area_id}/estimate", response_model=EstimateResponse,
            summary="Estimate the cell count of a build before committing to it")
async def estimate_cells(
    area_id: int,
    cell_size: Optional[float] = None,
    service: AreaIndexService = Depends(get_area_service),
    settings: Settings = Depends(get_settings_cached),
) -> EstimateResponse:
    cell_size = settings.DEFAULT_CELL_SIZE if cell_size is None else cell_size
    try:
        estimated = service.estimate(area_id, cell_size)
    except AreaIndexError as e:
        raise _http_error(e)
    return EstimateResponse(
        area_id=area_id,
        cell_size=cell_size,
        estimated_cells=estimated,
        max_cells=settings.MAX_CELL_COUNT,
        within_budget=estimated <= settings.MAX_CELL_COUNT,
    )


@router.post("/areas/{area_id}/contains", response_model=ContainsResponse,
             summary="Test a batch of points for containment in an area")
@limiter.limit(_contains_rate_limit)
async def contains(
    request: Request,
    area_id: int,
    body: ContainsRequest,
    service: AreaIndexService = Depends(get_area_service),
    pool: ThreadPoolService = Depends(get_thread_pool_service),
) -> ContainsResponse:
    try:
        await service.load_index_async(area_id)
        result = await pool.run_job(service.evaluate, area_id, body.points)
    except AreaIndexError as e:
        raise _http_error(e)

    return ContainsResponse(
        area_id=area_id,
        results=result.results,
        total_points=len(result.results),
        fast_path=result.fast_path,
        exact_tests=result.exact_tests,
        outside=result.outside,
    )


@router.delete("/shapefiles/{shapefile_id}", response_model=DeleteShapefileResponse,
               summary="Discard all areas (and their indexes) of a shapefile")
async def delete_shapefile(
    shapefile_id: int,
    service: AreaIndexService = Depends(get_area_service),
) -> DeleteShapefileResponse:
    removed = service.delete_shapefile(shapefile_id)
    return DeleteShapefileResponse(shapefile_id=shapefile_id, deleted_area_ids=removed)
