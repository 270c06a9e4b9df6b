from typing import Optional

from fastapi import APIRouter, Depends, Query

from fitplan.api.dependencies import get_session
from fitplan.domain.User import User
from fitplan.logic.session import PlanSession
from fitplan.utilities.validators import LoginInput

router = APIRouter(prefix="/api")


@router.get("/session")
def current_session(session: PlanSession = Depends(get_session)):
    return {"user": session.user.to_dict() if session.user else None, "loading": session.loading}


@router.post("/session/login")
async def login(body: LoginInput, session: PlanSession = Depends(get_session)):
    await session.sign_in(User(body.id, body.email, body.name))
    return {"status": "success", "user": session.user.to_dict()}


@router.post("/session/logout")
async def logout(session: PlanSession = Depends(get_session)):
    await session.sign_out()
    return {"status": "success"}


@router.get("/events")
def get_events(request_since: Optional[int] = Query(default=None, alias="since"),
               session: PlanSession = Depends(get_session)):
    """Notifications newer than ?since=<cursor> (toasts for saves, favorites and failures)."""
    return session.notifications.get_events(request_since)
