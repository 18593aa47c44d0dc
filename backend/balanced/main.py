import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .database import init_db
from .logging_setup import setup_logging
from .routers import admin as admin_router
from .routers import auth as auth_router
from .routers import booking as booking_router
from .routers import course as course_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    init_db()
    logger.info("tables ready")
    yield


app = FastAPI(title="Balanced Method Coaching", lifespan=lifespan)

# --- API Routers ---
app.include_router(auth_router.router)
app.include_router(booking_router.router)
app.include_router(admin_router.router)
app.include_router(course_router.router)


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    # malformed intake is a user-correctable 400, reported as-is
    errors = [
        {"field": ".".join(str(p) for p in e.get("loc", ())[1:]), "message": e.get("msg", "")}
        for e in exc.errors()
    ]
    first = errors[0] if errors else {"field": "", "message": "Invalid data"}
    message = f"{first['field']}: {first['message']}" if first["field"] else first["message"]
    return JSONResponse(status_code=400, content={"success": False, "error": message, "errors": errors})


@app.get("/ping")
def ping():
    return {"ok": True}
