import json

from fastapi import APIRouter, Depends, Header, HTTPException, Response
from starlette.status import (
    HTTP_304_NOT_MODIFIED,
    HTTP_400_BAD_REQUEST,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from ..core.errors import GeometryError, StoreUnavailable, UnsupportedFilter
from ..core.security import rate_limit, require_api_key
from ..core.utils import weak_etag
from ..schemas import AreaSearchRequest, Bounds, PolygonSearchRequest, SearchOptions, SearchResponse
from ..services.search_service import SearchRequest, SearchResult, SearchService

router = APIRouter()

def service_dep() -> SearchService:
    # Store clients are cheap to build; override in tests.
    return SearchService()

def _request(body: SearchOptions, shape: str, vertices) -> SearchRequest:
    return SearchRequest(
        shape_kind=shape,
        vertices=vertices,
        attribute_filters=dict(body.filters),
        min_price=body.min_price,
        max_price=body.max_price,
        sort=body.sort,
        descending=body.descending,
        limit=body.limit,
    )

async def _run(coro):
    try:
        return await coro
    except GeometryError as exc:
        raise HTTPException(
            status_code=422,
            detail={"error": exc.kind, "message": f"{exc.message}. Please redraw the search area."},
        )
    except UnsupportedFilter as exc:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail=str(exc))
    except StoreUnavailable as exc:
        raise HTTPException(status_code=HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))

def _respond(result: SearchResult, response: Response, if_none_match: str | None):
    min_lat, min_lng, max_lat, max_lng = result.ring.bbox()
    payload = {
        "items": [p.model_dump(mode="json", by_alias=True) for p in result.items],
        "count": len(result.items),
        "dropped": result.dropped,
        "bounds": Bounds(north=max_lat, south=min_lat, east=max_lng, west=min_lng).model_dump(),
    }
    etag = weak_etag(json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8"))
    if if_none_match and if_none_match == etag:
        return Response(status_code=HTTP_304_NOT_MODIFIED, headers={"ETag": etag})
    payload["etag"] = etag
    response.headers["ETag"] = etag
    return payload

@router.post("/search/polygon", response_model=SearchResponse)
async def post_polygon_search(
    body: PolygonSearchRequest,
    response: Response,
    if_none_match: str | None = Header(default=None, alias="if-none-match"),
    _auth = Depends(require_api_key),     # API key guard
    _lim  = Depends(rate_limit),          # Rate limiting
    svc: SearchService = Depends(service_dep),
):
    vertices = [(c.lat, c.lng) for c in body.coordinates]
    result = await _run(svc.search(_request(body, body.shape, vertices)))
    return _respond(result, response, if_none_match)

@router.post("/search/area", response_model=SearchResponse)
async def post_area_search(
    body: AreaSearchRequest,
    response: Response,
    if_none_match: str | None = Header(default=None, alias="if-none-match"),
    _auth = Depends(require_api_key),
    _lim  = Depends(rate_limit),
    svc: SearchService = Depends(service_dep),
):
    b = body.bounds
    result = await _run(
        svc.search_area(b.north, b.south, b.east, b.west, request=_request(body, "rectangle", ()))
    )
    return _respond(result, response, if_none_match)
