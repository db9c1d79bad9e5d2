# session_service/routers/session_routes.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..middleware.session import SessionContext, current_session
from ..schemas import MessageResponse, SessionCreate, SessionRead

router = APIRouter(prefix="/sessions", tags=["sessions"])

USER_ID_KEY = "userId"

SESSION_SET_MESSAGE = "세션 설정을 완료 하였습니다."
SESSION_READ_MESSAGE = "세션을 조회하였습니다."
SESSION_DELETED_MESSAGE = "세션을 삭제하였습니다."


@router.post("", response_model=MessageResponse, status_code=201)
async def create_session(body: SessionCreate, session: SessionContext = Depends(current_session)):
    session.set(USER_ID_KEY, body.user_id)
    return MessageResponse(message=SESSION_SET_MESSAGE)


@router.get("", response_model=SessionRead)
async def read_session(session: SessionContext = Depends(current_session)):
    return SessionRead(message=SESSION_READ_MESSAGE, session=session.get(USER_ID_KEY))


@router.delete("", response_model=MessageResponse)
async def delete_session(session: SessionContext = Depends(current_session)):
    session.destroy()
    return MessageResponse(message=SESSION_DELETED_MESSAGE)
