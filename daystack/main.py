import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from daystack import __version__
from daystack.auth import protect_pages
from daystack.config import APP_NAME, BASE_URL
from daystack.database import init_db
from daystack.routes.analytics_routes import router as analytics_router
from daystack.routes.auth_routes import router as auth_router
from daystack.routes.habit_routes import router as habit_router
from daystack.routes.metric_routes import router as metric_router
from daystack.routes.page_routes import router as page_router
from daystack.routes.settings_routes import router as settings_router

logger = logging.getLogger(__name__)

# Initialize db configuration
try:
    init_db()
except Exception as e:
    logger.error(f"Database init skipped or failed: {e}")

app = FastAPI(title=APP_NAME, version=__version__)


def flatten_validation_errors(errors: list[dict]) -> dict:
    """Group pydantic errors into form-level and per-field messages."""
    form_errors: list[str] = []
    field_errors: dict[str, list[str]] = {}
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        if loc:
            field_errors.setdefault(".".join(loc), []).append(err.get("msg", "Invalid value"))
        else:
            form_errors.append(err.get("msg", "Invalid input"))
    return {"formErrors": form_errors, "fieldErrors": field_errors}


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid input", "errors": flatten_validation_errors(exc.errors())},
    )


@app.get("/api/v1/health-check")
async def health():
    return {"status": "ok", "message": "Backend is alive!"}


app.middleware("http")(protect_pages)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[BASE_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(habit_router)
app.include_router(metric_router)
app.include_router(analytics_router)
app.include_router(settings_router)
app.include_router(page_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("daystack.main:app", host="0.0.0.0", port=8000, reload=True)
