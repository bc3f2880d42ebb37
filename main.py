import logging
import time

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import IntegrityError

from teamdesk import __version__
from teamdesk.config import settings
from teamdesk.database import Base, engine
from teamdesk.models.user import User
from teamdesk.routers import auth, user, team, task, project, equipment, stats
from teamdesk.services.scheduler import maintenance_scheduler
from teamdesk.utils.permissions import require_admin

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger("teamdesk")

app = FastAPI(title="TeamDesk API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms)
    return response


# Error handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning("Validation failed on %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=400,
        content={"detail": "Validation error", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(IntegrityError)
async def integrity_exception_handler(request: Request, exc: IntegrityError):
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(status_code=409, content={"detail": "Conflicting or duplicate data"})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"detail": "Internal server error"}
    if settings.is_development():
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


# Route registration
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(user.router, prefix="/api/users", tags=["Users"])
app.include_router(team.router, prefix="/api/teams", tags=["Teams"])
app.include_router(task.router, prefix="/api/tasks", tags=["Tasks"])
app.include_router(project.router, prefix="/api/projects", tags=["Projects"])
app.include_router(equipment.router, prefix="/api/equipment", tags=["Equipment"])
app.include_router(stats.router, prefix="/api", tags=["Stats"])


# Startup and shutdown events
@app.on_event("startup")
async def startup_event():
    """Create missing tables and start the maintenance scheduler"""
    logger.info("Starting TeamDesk API (%s)", settings.ENVIRONMENT)
    Base.metadata.create_all(bind=engine)
    if settings.SCHEDULER_ENABLED:
        maintenance_scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down TeamDesk API")
    maintenance_scheduler.stop()


# Root route
@app.get("/")
def read_root():
    return {"message": "TeamDesk API", "version": __version__}


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/scheduler/status")
def get_scheduler_status(current_user: User = Depends(require_admin)):
    return maintenance_scheduler.get_status()


@app.post("/scheduler/trigger/progress")
async def trigger_progress_recompute(current_user: User = Depends(require_admin)):
    """Run the project progress recompute now"""
    await maintenance_scheduler.recompute_project_progress()
    return {"message": "Progress recompute triggered successfully"}
