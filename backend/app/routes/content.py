"""API routes for subscriber bonus content."""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from ..schemas.content import ContentListResponse, ContentOut
from ..services.content import get_content_service
from .auth_dependency import get_current_user

router = APIRouter(prefix="/api/content", tags=["content"])


@router.get("", response_model=ContentListResponse)
def list_content(*, current_user=Depends(get_current_user)) -> ContentListResponse:
    service = get_content_service()
    return ContentListResponse.from_listing(service.list_visible(current_user.id))


@router.get("/featured", response_model=List[ContentOut])
def list_featured_content() -> List[ContentOut]:
    return [ContentOut.from_content(item) for item in get_content_service().featured()]


@router.get("/latest", response_model=List[ContentOut])
def list_latest_content() -> List[ContentOut]:
    return [ContentOut.from_content(item) for item in get_content_service().latest()]


@router.get("/category/{category}", response_model=ContentListResponse)
def list_content_by_category(
    category: str,
    *,
    current_user=Depends(get_current_user),
) -> ContentListResponse:
    service = get_content_service()
    return ContentListResponse.from_listing(
        service.list_visible(current_user.id, category=category)
    )


@router.get("/{content_id}", response_model=ContentOut)
def read_content(
    content_id: int,
    *,
    current_user=Depends(get_current_user),
) -> ContentOut:
    service = get_content_service()
    return ContentOut.from_content(service.get_one(current_user.id, content_id))
