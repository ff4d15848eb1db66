"""
Section API endpoints
Read-only view of the planner section registry
"""

from dataclasses import asdict
from fastapi import APIRouter, Query
from typing import Any, Dict, Optional

from finalwishes.config.sections import (
    SECTION_REGISTRY,
    get_deep_link_label,
    get_deep_link_route,
    get_section_navigation_by_route,
)

router = APIRouter()


@router.get("")
async def list_sections(group: Optional[str] = None) -> Dict[str, Any]:
    sections = [asdict(s) for s in SECTION_REGISTRY if group is None or s.group == group]
    return {"sections": sections, "count": len(sections)}


@router.get("/navigation")
async def section_navigation(route: str = Query(...)) -> Dict[str, Any]:
    """Prev/next routes and step for the page at `route`"""
    return asdict(get_section_navigation_by_route(route))


@router.get("/deep-link/{section_id}")
async def section_deep_link(section_id: str, focus: Optional[str] = None) -> Dict[str, str]:
    return {
        "route": get_deep_link_route(section_id, focus),
        "label": get_deep_link_label(section_id),
    }
