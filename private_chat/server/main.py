"""FastAPI application entrypoint for the private chat server."""
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from . import attachments, auth, messages, realtime, users
from .attachments import PUBLIC_PREFIX, AttachmentStore
from .config import DATABASE_URL, HOST, PORT, UPLOAD_DIR
from .database import Base, make_engine, make_session_factory
from .hub import ChatHub
from .identity import SqlIdentityStore
from .logging_config import configure_logging
from .message_log import SqlMessageLog

logger = configure_logging()


def create_app(database_url: Optional[str] = None, upload_dir: Optional[Path] = None) -> FastAPI:
    engine = make_engine(database_url or DATABASE_URL)
    # Create tables
    Base.metadata.create_all(bind=engine)
    session_factory = make_session_factory(engine)

    app = FastAPI(title="Private Chat Server", version="1.0.0")
    app.state.session_factory = session_factory
    app.state.attachments = AttachmentStore(upload_dir or UPLOAD_DIR)
    app.state.hub = ChatHub(SqlMessageLog(session_factory), SqlIdentityStore(session_factory))

    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(messages.router)
    app.include_router(attachments.router)
    app.include_router(realtime.router)
    app.mount(PUBLIC_PREFIX, StaticFiles(directory=app.state.attachments.upload_dir), name="uploads")

    @app.get("/")
    def root():
        return {"status": "ok", "online": len(app.state.hub.presence.list_online())}

    logger.info("APP_CREATED database=%s", engine.url)
    return app


def main() -> None:
    uvicorn.run("private_chat.server.main:create_app", factory=True, host=HOST, port=PORT, reload=False)


if __name__ == "__main__":
    main()
