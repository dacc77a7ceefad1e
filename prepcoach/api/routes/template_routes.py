"""
Interview Template Routes

GET /templates - List built-in templates (filter by category, difficulty, role)
GET /templates/{id} - Get template with its questions
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from prepcoach.services.template_service import list_templates, get_template
from prepcoach.schemas.schemas import InterviewTemplate, TemplateListResponse, InterviewType, Difficulty

router = APIRouter(prefix="/templates", tags=["Templates"])


@router.get("", response_model=TemplateListResponse)
async def get_templates(
    category: Optional[InterviewType] = Query(None),
    difficulty: Optional[Difficulty] = Query(None),
    role: Optional[str] = Query(None, description="Case-insensitive substring of the role"),
):
    templates = list_templates(
        category=category.value if category else None,
        difficulty=difficulty.value if difficulty else None,
        role=role,
    )
    return TemplateListResponse(data=templates, count=len(templates))


@router.get("/{template_id}", response_model=InterviewTemplate)
async def get_template_by_id(template_id: str):
    template = get_template(template_id)
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")
    return template
