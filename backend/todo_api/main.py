from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .accounts import AccountService, Principal
from .config import Settings
from .db import Database
from .deps import get_accounts, get_current_user, get_task_store
from .errors import AppError, NotFoundError
from .models import Task
from .schemas import AuthIn, AuthOut, MessageOut, TaskCreate, TaskOut, TaskUpdate, UserOut
from .tasks import TaskStore

logger = logging.getLogger(__name__)


def _task_out(t: Task) -> TaskOut:
    return TaskOut(
        id=int(t.id),
        title=t.title,
        description=t.description or "",
        status=t.status,
        user_id=int(t.user_id),
        created_at=t.created_at,
        updated_at=t.updated_at,
    )


def _parse_task_id(raw: str) -> int:
    # non-numeric ids name no task
    if not raw.isascii() or not raw.isdigit():
        raise NotFoundError("Task not found or unauthorized")
    return int(raw)


def _auth_out(message: str, token: str, user: Principal) -> AuthOut:
    return AuthOut(message=message, token=token, user=UserOut(id=user.id, email=user.email))


def create_app(settings: Settings | None = None, *, db: Database | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    db = db or Database(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db.setup()
        logger.info("todo api started")
        try:
            yield
        finally:
            db.teardown()

    app = FastAPI(title="Todo API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.db = db
    app.state.accounts = AccountService(
        db,
        jwt_secret=settings.jwt_secret,
        jwt_ttl_seconds=settings.jwt_ttl_seconds,
        pbkdf2_iters=settings.pbkdf2_iters,
    )
    app.state.tasks = TaskStore(db)
    app.state.redis = redis.Redis.from_url(settings.redis_url, socket_connect_timeout=1) if settings.redis_url else None

    @app.exception_handler(AppError)
    async def _app_error(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc.__cause__)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def _bad_request(request: Request, exc: RequestValidationError):
        logger.debug("rejected request %s %s: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"error": "Invalid request"})

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception):
        logger.error("%s %s crashed", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"error": AppError.default_message})

    @app.get("/health")
    def health():
        body: dict = {"status": "OK", "message": "Server is running"}
        r = app.state.redis
        if r is not None:
            try:
                body["redis"] = bool(r.ping())
            except redis.RedisError:
                body["redis"] = False
        return body

    @app.post("/auth/signup", response_model=AuthOut, status_code=201)
    def signup(body: AuthIn, accounts: AccountService = Depends(get_accounts)):
        token, user = accounts.register(body.email, body.password)
        return _auth_out("User created successfully", token, user)

    @app.post("/auth/login", response_model=AuthOut)
    def login(body: AuthIn, accounts: AccountService = Depends(get_accounts)):
        token, user = accounts.authenticate(body.email, body.password)
        return _auth_out("Login successful", token, user)

    @app.get("/tasks", response_model=list[TaskOut])
    def list_tasks(user: Principal = Depends(get_current_user), store: TaskStore = Depends(get_task_store)):
        return [_task_out(t) for t in store.list(user.id)]

    @app.post("/tasks", response_model=TaskOut, status_code=201)
    def create_task(
        body: TaskCreate,
        user: Principal = Depends(get_current_user),
        store: TaskStore = Depends(get_task_store),
    ):
        return _task_out(store.create(user.id, body.title, body.description))

    @app.put("/tasks/{task_id}", response_model=TaskOut)
    def update_task(
        task_id: str,
        body: TaskUpdate,
        user: Principal = Depends(get_current_user),
        store: TaskStore = Depends(get_task_store),
    ):
        return _task_out(store.update(user.id, _parse_task_id(task_id), body.title, body.description, body.status))

    @app.delete("/tasks/{task_id}", response_model=MessageOut)
    def delete_task(
        task_id: str,
        user: Principal = Depends(get_current_user),
        store: TaskStore = Depends(get_task_store),
    ):
        store.delete(user.id, _parse_task_id(task_id))
        return MessageOut(message="Task deleted successfully")

    return app
