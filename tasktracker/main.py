import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import crud, models, schemas
from .auth import create_access_token, get_current_user
from .config import DEFAULT_JWT_SECRET, get_settings
from .database import get_db, init_db
from .errors import ApiError, AuthError
from .logging_setup import setup_logging

logger = logging.getLogger(__name__)
settings = get_settings()

STARTED_AT = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    if settings.jwt_secret == DEFAULT_JWT_SECRET:
        logger.warning("Signing tokens with the default JWT secret; set TASKTRACKER_JWT_SECRET")
    init_db()
    logger.info("%s started env=%s", settings.app_name, settings.environment)
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


if settings.is_development:
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        return await call_next(request)


# ============== ERROR HANDLERS ==============

@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc)
        errors.append(f"{field}: {err['msg']}" if field else err["msg"])
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Validation error", "errors": errors},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        logger.info("404 - Route not found: %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "message": "Route not found",
                "path": request.url.path,
                "method": request.method,
            },
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "message": "Something went wrong!",
            "error": str(exc) if settings.is_development else "Internal server error",
        },
    )


# ============== HEALTH ==============

@app.get("/health", response_model=schemas.Health)
def health_check():
    return schemas.Health(
        message="Server is running!",
        timestamp=models.utcnow(),
        environment=settings.environment,
        uptime=round(time.monotonic() - STARTED_AT, 3),
    )


# ============== AUTH ENDPOINTS ==============

@app.post("/auth/register", response_model=schemas.AuthResponse, status_code=status.HTTP_201_CREATED)
def register(user: schemas.UserCreate, db: Session = Depends(get_db)):
    """Register a new user and sign them in"""
    db_user = crud.create_user(db, user)
    return schemas.AuthResponse(
        message="User registered successfully",
        token=create_access_token(db_user.id),
        user=schemas.User.model_validate(db_user),
    )


@app.post("/auth/login", response_model=schemas.AuthResponse)
def login(creds: schemas.UserLogin, db: Session = Depends(get_db)):
    """Login and get a bearer token"""
    user = crud.authenticate_user(db, creds.email, creds.password)
    logger.info("User logged in id=%s", user.id)
    return schemas.AuthResponse(
        message="Login successful",
        token=create_access_token(user.id),
        user=schemas.User.model_validate(user),
    )


@app.get("/auth/me", response_model=schemas.UserResponse)
def read_users_me(current_user: models.User = Depends(get_current_user)):
    """Get current user info"""
    return schemas.UserResponse(user=schemas.User.model_validate(current_user))


# ============== TASK ENDPOINTS (PROTECTED) ==============

@app.get("/tasks", response_model=schemas.TaskList)
def read_tasks(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    completed: Optional[bool] = None,
    priority: Optional[schemas.Priority] = None,
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Get a page of the current user's tasks"""
    tasks, pagination = crud.list_tasks(
        db,
        current_user.id,
        page=page,
        limit=limit,
        completed=completed,
        priority=priority,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return schemas.TaskList(
        tasks=[schemas.Task.model_validate(t) for t in tasks],
        pagination=pagination,
    )


@app.get("/tasks/stats", response_model=schemas.StatsResponse)
def read_task_stats(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Counts over the current user's tasks"""
    return schemas.StatsResponse(stats=crud.task_stats(db, current_user.id))


@app.post("/tasks", response_model=schemas.TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    task: schemas.TaskCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Create a new task owned by the current user"""
    db_task = crud.create_task(db, current_user.id, task)
    return schemas.TaskResponse(
        message="Task created successfully",
        task=schemas.Task.model_validate(db_task),
    )


@app.get("/tasks/{task_id}", response_model=schemas.TaskResponse)
def read_task(
    task_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Get one of the current user's tasks"""
    db_task = crud.get_task(db, current_user.id, task_id)
    return schemas.TaskResponse(task=schemas.Task.model_validate(db_task))


@app.patch("/tasks/{task_id}", response_model=schemas.TaskResponse)
def update_task(
    task_id: str,
    task_update: schemas.TaskUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Update only the provided fields of a task"""
    db_task = crud.update_task(db, current_user.id, task_id, task_update)
    return schemas.TaskResponse(
        message="Task updated successfully",
        task=schemas.Task.model_validate(db_task),
    )


@app.patch("/tasks/{task_id}/toggle", response_model=schemas.TaskResponse)
def toggle_task(
    task_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Flip a task between done and not done"""
    db_task = crud.toggle_task(db, current_user.id, task_id)
    return schemas.TaskResponse(
        message="Task updated successfully",
        task=schemas.Task.model_validate(db_task),
    )


@app.delete("/tasks/{task_id}", response_model=schemas.Message)
def delete_task(
    task_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Delete a task permanently"""
    crud.delete_task(db, current_user.id, task_id)
    return {"message": "Task deleted successfully"}
