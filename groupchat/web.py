from __future__ import annotations

import json

from fastapi import FastAPI, File, Form, HTTPException, UploadFile, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from fastapi.staticfiles import StaticFiles

from .accounts import AccountStore
from .config import DATABASE_URL, MAX_MEDIA_BYTES, STATIC_DIR
from .database import make_engine, make_session_factory
from .errors import (
    DuplicateUsernameError,
    InvalidAttachmentError,
    PayloadTooLargeError,
    PersistenceError,
    UnsupportedMediaTypeError,
)
from .gateway import ChatGateway
from .logging_config import configure_logging
from .store import MessageStore

logger = configure_logging()


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, PayloadTooLargeError):
        return HTTPException(status_code=413, detail=str(exc))
    if isinstance(exc, UnsupportedMediaTypeError):
        return HTTPException(status_code=415, detail=str(exc))
    if isinstance(exc, InvalidAttachmentError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, DuplicateUsernameError):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=503, detail=str(exc))


def create_app(database_url: str = DATABASE_URL) -> FastAPI:
    session_factory = make_session_factory(make_engine(database_url))
    accounts = AccountStore(session_factory)
    gateway = ChatGateway(accounts, MessageStore(session_factory))

    app = FastAPI(title="groupchat", version="1.0.0")
    app.state.gateway = gateway
    if STATIC_DIR.is_dir():
        app.mount("/static", StaticFiles(directory=STATIC_DIR, html=True), name="static")

    @app.get("/health")
    async def health() -> dict[str, int | str]:
        return {"status": "ok", "online_users": gateway.registry.online_count()}

    @app.post("/api/users")
    async def create_user(
        username: str = Form(...),
        profile_pic: UploadFile | None = File(default=None),
    ) -> dict:
        username = username.strip()
        if not username:
            raise HTTPException(status_code=400, detail="Username is required")

        avatar = None
        avatar_mime = None
        if profile_pic is not None:
            try:
                # read one byte past the limit so oversize uploads are still detected
                avatar = await profile_pic.read(MAX_MEDIA_BYTES + 1)
                avatar_mime = profile_pic.content_type
            finally:
                await profile_pic.close()

        try:
            user = await run_in_threadpool(accounts.find_or_create_user, username, avatar or None, avatar_mime)
        except (InvalidAttachmentError, DuplicateUsernameError, PersistenceError) as exc:
            logger.info("USER_CREATE_FAIL username=%s reason=%s", username, exc)
            raise _http_error(exc) from exc
        return user.to_dict()

    @app.get("/api/users/online")
    async def online_users() -> dict[str, list[str]]:
        return {"users": gateway.registry.online_users()}

    @app.get("/api/messages")
    async def list_messages(after_id: int = 0) -> list[dict]:
        try:
            messages = await gateway.pipeline.list_all(after_id)
        except PersistenceError as exc:
            logger.error("HISTORY_FAIL reason=%s", exc)
            raise _http_error(exc) from exc
        return [message.to_dict() for message in messages]

    @app.websocket("/ws")
    async def websocket_chat(websocket: WebSocket) -> None:
        await websocket.accept()
        connection_id = await gateway.connect(websocket)

        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    payload = json.loads(raw)
                except json.JSONDecodeError:
                    await gateway.send_error(connection_id, "bad_request", "Invalid JSON.")
                    continue
                await gateway.handle(connection_id, payload)
        except WebSocketDisconnect:
            pass
        finally:
            await gateway.disconnect(connection_id)

    return app
