"""Conversation history routes."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from . import schemas
from .auth import get_current_username

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/private", response_model=List[schemas.MessageOut])
async def get_private_messages(request: Request, peer: str, username: str = Depends(get_current_username)):
    hub = request.app.state.hub
    if await run_in_threadpool(hub.identity.find_by_username, peer) is None:
        raise HTTPException(status_code=404, detail="User not found")
    return await run_in_threadpool(hub.message_log.query_conversation, username, peer)
