from fastapi import APIRouter, Depends, HTTPException, Request

from app.chat.api.dto import (
    PersonaUpdateDTO,
    SendMessageDTO,
    message_payload,
    session_payload,
    sessions_payload,
)
from app.chat.service.session_service import (
    ChatSessionService,
    MessagePendingError,
    SessionNotFoundError,
)
from app.core.dto import BaseResponse
from app.core.logger import get_logger

session_router = APIRouter(prefix="/sessions", tags=["Sessions"])
logger = get_logger("SessionRouter")


def get_session_service(request: Request) -> ChatSessionService:
    """Dependency to get session service from app.state."""
    service = getattr(request.app.state, "session_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Session service not available")
    return service


@session_router.get("", response_model=BaseResponse)
async def list_sessions(session_service: ChatSessionService = Depends(get_session_service)):
    sessions = await session_service.list_sessions()
    active = await session_service.get_active_session_id()
    return BaseResponse(
        status=True,
        message="Sessions fetched successfully",
        data=sessions_payload(sessions, active),
    )


@session_router.post("", response_model=BaseResponse, status_code=201)
async def create_session(session_service: ChatSessionService = Depends(get_session_service)):
    """Start a new chat; it becomes the active session."""
    session = await session_service.create_session()
    logger.info(f"Created session_id={session.id}")
    return BaseResponse(status=True, message="Session created successfully", data=session_payload(session))


@session_router.get("/{session_id}", response_model=BaseResponse)
async def get_session(session_id: str, session_service: ChatSessionService = Depends(get_session_service)):
    try:
        session = await session_service.get_session(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return BaseResponse(status=True, message="Session fetched successfully", data=session_payload(session))


@session_router.delete("/{session_id}", response_model=BaseResponse)
async def delete_session(session_id: str, session_service: ChatSessionService = Depends(get_session_service)):
    """
    Delete a session. Deleting the last one replaces it with a fresh session;
    deleting the active one activates the first remaining session.
    """
    try:
        active = await session_service.delete_session(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    logger.info(f"Deleted session_id={session_id}")
    return BaseResponse(
        status=True,
        message="Session deleted successfully",
        data={"session_id": session_id, "activeSessionId": active},
    )


@session_router.post("/{session_id}/activate", response_model=BaseResponse)
async def activate_session(session_id: str, session_service: ChatSessionService = Depends(get_session_service)):
    try:
        session = await session_service.select_session(session_id)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return BaseResponse(status=True, message="Session activated", data=session_payload(session))


@session_router.patch("/{session_id}/persona", response_model=BaseResponse)
async def update_persona(
    session_id: str,
    body: PersonaUpdateDTO,
    session_service: ChatSessionService = Depends(get_session_service),
):
    try:
        session = await session_service.update_persona(session_id, body.persona)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return BaseResponse(status=True, message="Persona updated", data=session_payload(session))


@session_router.post("/{session_id}/messages", response_model=BaseResponse)
async def send_message(
    session_id: str,
    body: SendMessageDTO,
    session_service: ChatSessionService = Depends(get_session_service),
):
    """Send a user message and wait for the model reply."""
    try:
        session, reply = await session_service.send_message(body.text, session_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    except MessagePendingError:
        raise HTTPException(status_code=409, detail="A reply is still being generated for this session")

    return BaseResponse(
        status=True,
        message="Message sent",
        data={"session": session_payload(session), "reply": message_payload(reply)},
    )
