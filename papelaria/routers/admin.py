"""Read-only diagnostics over live sessions."""

from fastapi import APIRouter, Depends, HTTPException

from papelaria.runtime import get_engine
from papelaria.schemas.session import SessionView
from papelaria.services.session_engine import SessionEngine
from papelaria.services.state_machine import check_invariants

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/sessions")
async def list_sessions(engine: SessionEngine = Depends(get_engine)):
    sessions = [SessionView.from_session(session) for session in engine.store]
    return {"count": len(sessions), "sessions": sessions}


@router.get("/sessions/{contact_id}")
async def get_session(contact_id: str, engine: SessionEngine = Depends(get_engine)):
    session = engine.store.get(contact_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"session": SessionView.from_session(session), "violations": check_invariants(session)}
