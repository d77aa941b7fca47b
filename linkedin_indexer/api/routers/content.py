"""Content query endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from linkedin_indexer.api.deps import get_data_service
from linkedin_indexer.models import ContentQuery
from linkedin_indexer.services.data_service import DataService

router = APIRouter(prefix="/content", tags=["content"])


@router.get("")
def list_content(
    topic: str | None = Query(default=None),
    region: str | None = Query(default=None),
    subregion: str | None = Query(default=None),
    type: str | None = Query(default=None, pattern="^(article|post|all)$"),
    author_id: str | None = Query(default=None),
    since: datetime | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    service: DataService = Depends(get_data_service),
):
    query = ContentQuery(
        topic=topic,
        region=region,
        subregion=subregion,
        type=type,
        author_id=author_id,
        since=since,
        limit=limit,
        offset=offset,
    )
    items = service.query_content(query)
    return {
        "data": [item.to_dict() for item in items],
        "count": len(items),
        "query": query.model_dump(mode="json", exclude_none=True),
    }


@router.get("/{content_id}")
def get_content(content_id: str, service: DataService = Depends(get_data_service)):
    item = service.get_content_by_id(content_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Content not found")
    return item.to_dict()
