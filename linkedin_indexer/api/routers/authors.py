"""Author endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query

from linkedin_indexer.api.deps import get_data_service
from linkedin_indexer.models import ContentQuery
from linkedin_indexer.services.data_service import DataService

router = APIRouter(prefix="/authors", tags=["authors"])


@router.get("")
def list_authors(service: DataService = Depends(get_data_service)):
    authors = service.list_authors()
    return {"data": [a.to_dict() for a in authors], "count": len(authors)}


@router.get("/{author_id}")
def get_author(author_id: str, service: DataService = Depends(get_data_service)):
    author = service.get_author_by_id(author_id)
    if author is None:
        raise HTTPException(status_code=404, detail="Author not found")
    return author.to_dict()


@router.get("/{author_id}/content")
def author_content(
    author_id: str,
    limit: int = Query(default=20, ge=1, le=100),
    service: DataService = Depends(get_data_service),
):
    items = service.query_content(ContentQuery(author_id=author_id, limit=limit))
    return {"data": [item.to_dict() for item in items], "count": len(items)}
