"""Search and health endpoints."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from src.agents.pipeline import SearchPipeline
from src.config.settings import settings
from src.errors import InvalidRequest
from src.state.models import SearchRequest
from src.tools.scraping.parsing import num_or_none
from src.tools.scraping.user_targets import parse_targets

router = APIRouter(prefix="/api", tags=["search"])


def get_pipeline(request: Request) -> SearchPipeline:
    """Pipeline built once at app startup."""
    return request.app.state.pipeline


def build_search_request(
    q: Optional[str],
    budget: Optional[str] = None,
    size_min: Optional[str] = None,
    size_max: Optional[str] = None,
    condition: Optional[str] = None,
    targets: Optional[str] = None,
) -> SearchRequest:
    """Validate raw query parameters. Unparsable numbers count as absent."""
    query = (q or "").strip()
    if not query:
        raise InvalidRequest("missing q")
    return SearchRequest(
        q=query,
        budget=num_or_none(budget),
        size_min=num_or_none(size_min),
        size_max=num_or_none(size_max),
        condition=(condition or "any").strip().lower() or "any",
        targets=[t for t in parse_targets(targets) if t.startswith(("http://", "https://"))],
    )


@router.get("/search")
async def search(
    q: Optional[str] = Query(None),
    budget: Optional[str] = Query(None),
    size_min: Optional[str] = Query(None, alias="sizeMin"),
    size_max: Optional[str] = Query(None, alias="sizeMax"),
    condition: Optional[str] = Query(None),
    targets: Optional[str] = Query(None),
    pipeline: SearchPipeline = Depends(get_pipeline),
):
    """Run a search. Partial source failures still return 200."""
    try:
        request = build_search_request(q, budget, size_min, size_max, condition, targets)
        result = await pipeline.search(request)
    except InvalidRequest as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    return result.to_wire()


@router.get("/health")
async def health():
    """Liveness plus which optional collaborators are configured."""
    return {
        "ok": True,
        "hasOracle": settings.has_oracle,
        "hasWebSearch": settings.has_web_search,
        "ts": datetime.now().isoformat(),
    }
