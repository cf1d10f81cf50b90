"""FastAPI application serving the quiz/attempt and progress services."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from learnsync.database import init_db
from learnsync.logging_setup import setup_console_logging
from learnsync.routes import attempts, catalog, progress, quizzes

setup_console_logging()

app = FastAPI(title="LearnSync API")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# Startup events
@app.on_event("startup")
def startup_events() -> None:
    """Initialize database on startup."""
    init_db()


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


# Include routers
app.include_router(catalog.router)
app.include_router(quizzes.router)
app.include_router(attempts.router)
app.include_router(progress.router)
