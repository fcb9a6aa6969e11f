from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from biomap.api import deps
from biomap.utils.logging_config import LogFiles, Logger, set_trace_id

router = APIRouter()


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    project_id: Optional[str] = Field(default=None, alias="projectId")
    message: Optional[str] = None
    selected_paper_ids: Optional[List[str]] = Field(default=None, alias="selectedPaperIds")


@router.post("/chat")
def chat(req: ChatRequest):
    set_trace_id()
    result = deps.get_chat_service().send(req.project_id, req.message, req.selected_paper_ids)
    Logger.info(
        f"Chat project={req.project_id} papers={result['contextUsed']['papers']} "
        f"notes={result['contextUsed']['notes']}",
        file=LogFiles.CHAT,
    )
    return result


@router.get("/chat/history/{project_id}")
def get_chat_history(project_id: str):
    # absent history is an empty list, never a 404
    return deps.get_workspace_store().get_chat_history(project_id).to_dict()


@router.delete("/chat/history/{project_id}")
def clear_chat_history(project_id: str):
    set_trace_id()
    deps.get_workspace_store().clear_chat_history(project_id)
    Logger.info(f"Chat history cleared project={project_id}", file=LogFiles.CHAT)
    return {"success": True, "message": "Chat history cleared"}
