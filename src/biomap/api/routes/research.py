"""
Research map build/read, evidence extraction and similar-paper suggestions.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, Field

from biomap.api import deps
from biomap.domain.errors import NotFoundError, require_fields
from biomap.utils.logging_config import LogFiles, Logger, set_trace_id

router = APIRouter()


class EvidenceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    paper_id: Optional[str] = Field(default=None, alias="paperId")
    title: Optional[str] = None
    abstract: Optional[str] = None


class SimilarPapersRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    paper_id: Optional[str] = Field(default=None, alias="paperId")
    title: Optional[str] = None
    abstract: Optional[str] = None
    count: int = Field(default=5, ge=1, le=20)


@router.post("/research/map/{project_id}")
async def build_research_map(project_id: str, strategy: Optional[str] = Query(default=None)):
    set_trace_id()
    service = deps.get_research_map_service()
    outcome = await service.build(project_id, strategy=strategy)

    research_map = outcome.research_map
    Logger.info(
        f"Research map project={project_id} strategy={research_map.strategy} "
        f"branches={len(research_map.clusters)} papers={research_map.total_papers}",
        file=LogFiles.RESEARCH,
    )
    body = {
        "success": True,
        "clusters": [c.to_dict() for c in research_map.clusters],
        "totalPapers": research_map.total_papers,
    }
    if outcome.message:
        body["message"] = outcome.message
    return body


@router.get("/research/map/{project_id}")
def get_research_map(project_id: str):
    research_map = deps.get_workspace_store().get_research_map(project_id)
    if research_map is None:
        raise NotFoundError("Research map not found. Generate one first.")
    return research_map


@router.post("/research/evidence")
def extract_evidence(req: EvidenceRequest):
    set_trace_id()
    require_fields(abstract=req.abstract)

    evidence = deps.get_llm_service().extract_evidence(abstract=req.abstract, title=req.title or "")
    Logger.info(f"Evidence extracted paper={req.paper_id}", file=LogFiles.RESEARCH)
    return {
        "success": True,
        "paperId": req.paper_id,
        "title": req.title,
        "evidence": evidence.to_dict(),
    }


@router.post("/research/similar")
def similar_papers(req: SimilarPapersRequest):
    set_trace_id()
    require_fields(title=req.title, abstract=req.abstract)

    papers = deps.get_llm_service().suggest_similar_papers(
        title=req.title, abstract=req.abstract, count=req.count
    )
    Logger.info(f"Similar papers paper={req.paper_id} count={len(papers)}", file=LogFiles.RESEARCH)
    return {
        "success": True,
        "similarPapers": [p.to_dict() for p in papers],
        "basedOn": {"paperId": req.paper_id, "title": req.title},
    }
