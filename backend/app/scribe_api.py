"""
Recorder API

HTTP endpoints for recording sessions, network capture and script
generation. The message endpoint accepts the same operation-keyed
messages a browser extension sends to its background worker.
"""

import logging
from typing import Dict, List, Any, Optional
from fastapi import APIRouter, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel, Field

from scribe import (
    InvariantViolationError,
    NotFoundError,
    ScribeError,
    UnsupportedTargetError,
    get_recorder_service,
)

# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/api/recorder", tags=["Recorder"])


# ==================== Request/Response Models ====================

class StartSessionRequest(BaseModel):
    """Tab to bind a new recording session to"""
    tab_id: Optional[int] = None
    url: str = ""
    title: str = ""


class ActionsRequest(BaseModel):
    actions: List[Dict[str, Any]] = Field(default_factory=list)
    tab_id: Optional[int] = None


class GenerateScriptRequest(BaseModel):
    """Compile recorded actions into a test script"""
    framework: str = "playwright"
    actions: Optional[List[Dict[str, Any]]] = None  # None means use the latest session
    session_id: Optional[str] = None
    options: Dict[str, Any] = Field(default_factory=dict)


class TabUpdatedRequest(BaseModel):
    url: Optional[str] = None
    status: Optional[str] = None
    title: Optional[str] = None


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, InvariantViolationError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, (UnsupportedTargetError, ValueError)):
        return HTTPException(status_code=400, detail=str(e))
    logger.error(f"Recorder request failed: {e}")
    return HTTPException(status_code=500, detail=str(e))


# ==================== Sessions ====================

@router.post("/sessions")
async def start_session(request: StartSessionRequest):
    """Start recording on a tab"""
    service = get_recorder_service()
    try:
        session_id = await service.start_session(request.model_dump())
    except (ScribeError, ValueError) as e:
        raise _http_error(e)
    return {"success": True, "session_id": session_id}


@router.post("/sessions/pause")
async def pause_session():
    try:
        session = await get_recorder_service().pause_session()
    except ScribeError as e:
        raise _http_error(e)
    return {"success": True, "session": session.to_dict(include_actions=False)}


@router.post("/sessions/resume")
async def resume_session():
    try:
        session = await get_recorder_service().resume_session()
    except ScribeError as e:
        raise _http_error(e)
    return {"success": True, "session": session.to_dict(include_actions=False)}


@router.post("/sessions/stop")
async def stop_session():
    """Stop recording and move the session into history"""
    try:
        result = await get_recorder_service().stop_session()
    except ScribeError as e:
        raise _http_error(e)
    return {"success": True, **result}


@router.get("/sessions/current")
async def get_current_session():
    service = get_recorder_service()
    session = service.current_session()
    return {
        "session": session.to_dict() if session else None,
        **service.manager.recording_state(),
    }


@router.post("/sessions/actions")
async def append_actions(request: ActionsRequest):
    appended = get_recorder_service().append_actions(request.actions, tab_id=request.tab_id)
    return {"success": True, "appended": appended}


@router.get("/sessions/history")
async def get_session_history():
    return {"history": get_recorder_service().history()}


@router.get("/sessions/{session_id}/export")
async def export_session(session_id: str, format: str = "json"):
    """Download a session as JSON or CSV"""
    try:
        data = get_recorder_service().export_session(session_id, format)
    except ScribeError as e:
        raise _http_error(e)
    media_type = "text/csv" if format.lower() == "csv" else "application/json"
    return Response(
        content=data,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={session_id}.{format.lower()}"},
    )


# ==================== Tabs ====================

@router.post("/tabs/{tab_id}/removed")
async def tab_removed(tab_id: int):
    session = await get_recorder_service().handle_tab_removed(tab_id)
    return {"success": True, "stopped": session is not None}


@router.post("/tabs/{tab_id}/updated")
async def tab_updated(tab_id: int, request: TabUpdatedRequest):
    await get_recorder_service().handle_tab_updated(
        tab_id, url=request.url, status=request.status, title=request.title
    )
    return {"success": True}


# ==================== Generation ====================

@router.post("/generate")
async def generate_script(request: GenerateScriptRequest):
    """
    Generate a test script.

    Uses the request's actions when given, otherwise the named session
    or the most recent one.
    """
    try:
        script = get_recorder_service().generate_script(
            request.framework,
            actions=request.actions,
            options=request.options,
            session_id=request.session_id,
        )
    except (ScribeError, ValueError) as e:
        raise _http_error(e)
    return {"success": True, "framework": request.framework, "script": script}


# ==================== Network ====================

@router.post("/network/events")
async def ingest_network_event(event: Dict[str, Any]):
    try:
        request = get_recorder_service().ingest_network_event(event)
    except ValueError as e:
        raise _http_error(e)
    return {"success": True, "request": request.to_dict() if request else None}


@router.get("/network/summary")
async def network_summary():
    return get_recorder_service().network_summary()


@router.get("/network/export")
async def export_network_data(format: str = "json"):
    """Download captured traffic as JSON or HAR"""
    try:
        data = get_recorder_service().export_network_data(format)
    except ScribeError as e:
        raise _http_error(e)
    return Response(content=data, media_type="application/json")


# ==================== Messages ====================

@router.post("/messages")
async def handle_message(message: Dict[str, Any]):
    """Dispatch an extension-style message such as START_RECORDING_SESSION"""
    return await get_recorder_service().handle_message(message)
