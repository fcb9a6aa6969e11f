"""
Project intake: the project record and its LLM summary anchor every map and chat turn.
"""

from __future__ import annotations

from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict

from biomap.api import deps
from biomap.domain.errors import NotFoundError, require_fields
from biomap.domain.research import Project, utcnow_iso
from biomap.utils.logging_config import LogFiles, Logger, set_trace_id

router = APIRouter()


class ProjectCreateRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    description: Optional[str] = None
    capabilities: Optional[Dict[str, Any]] = None
    constraints: Optional[Dict[str, Any]] = None


class ProjectUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    description: Optional[str] = None
    capabilities: Optional[Dict[str, Any]] = None
    constraints: Optional[Dict[str, Any]] = None


def _get_project_or_404(project_id: str) -> Project:
    project = deps.get_workspace_store().get_project(project_id)
    if project is None:
        raise NotFoundError("Project not found")
    return project


@router.post("/projects")
def create_project(req: ProjectCreateRequest):
    set_trace_id()
    require_fields(description=req.description)

    capabilities = req.capabilities or {}
    constraints = req.constraints or {}
    summary = deps.get_llm_service().summarize_project(req.description, capabilities, constraints)

    project = Project(
        id=f"project_{uuid4().hex}",
        description=req.description,
        capabilities=capabilities,
        constraints=constraints,
        summary=summary,
    )
    deps.get_workspace_store().save_project(project)
    Logger.info(f"Project created id={project.id}", file=LogFiles.API)
    return {"success": True, "project": project.to_dict()}


@router.get("/projects")
def list_projects():
    return [p.to_dict() for p in deps.get_workspace_store().list_projects()]


@router.get("/projects/{project_id}")
def get_project(project_id: str):
    return _get_project_or_404(project_id).to_dict()


@router.put("/projects/{project_id}")
def update_project(project_id: str, req: ProjectUpdateRequest):
    set_trace_id()
    project = _get_project_or_404(project_id)

    if req.description:
        project.description = req.description
    if req.capabilities:
        project.capabilities = req.capabilities
    if req.constraints:
        project.constraints = req.constraints

    if req.description:
        project.summary = deps.get_llm_service().summarize_project(
            project.description, project.capabilities, project.constraints
        )

    project.updated_at = utcnow_iso()
    deps.get_workspace_store().save_project(project)
    Logger.info(
        f"Project updated id={project_id} resummarized={bool(req.description)}",
        file=LogFiles.API,
    )
    return project.to_dict()
