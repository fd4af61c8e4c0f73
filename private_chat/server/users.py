"""User directory and profile routes."""
from typing import List

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from starlette.concurrency import run_in_threadpool

from . import schemas
from .attachments import store_image
from .auth import get_current_username
from .logging_config import configure_logging
from .models import User

router = APIRouter(prefix="/users", tags=["users"])
logger = configure_logging()


@router.get("", response_model=List[schemas.UserOut])
def list_users(request: Request, _: str = Depends(get_current_username)):
    return request.app.state.hub.identity.list_all()


def _update_profile(session_factory, username: str, display_name: str, avatar_url: str | None) -> User | None:
    db = session_factory()
    try:
        user = db.query(User).filter(User.username == username).first()
        if not user:
            return None
        user.display_name = display_name
        if avatar_url:
            user.avatar = avatar_url
        db.commit()
        db.refresh(user)
        return user
    finally:
        db.close()


@router.post("/profile", response_model=schemas.UserOut)
async def update_profile(
    request: Request,
    display_name: str = Form(default=""),
    avatar: UploadFile | None = File(default=None),
    username: str = Depends(get_current_username),
):
    avatar_url = await store_image(request, avatar) if avatar is not None and avatar.filename else None
    user = await run_in_threadpool(
        _update_profile, request.app.state.session_factory, username, display_name.strip(), avatar_url
    )
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    logger.info("PROFILE_UPDATED username=%s avatar_changed=%s", username, bool(avatar_url))
    request.app.state.hub.fanout.broadcast_profile_changed(username)
    return user
