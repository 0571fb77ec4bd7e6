import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from matchprogram.config import CORS_ORIGINS, LOG_LEVEL, MAX_COURTS, MAX_ROUNDS
from matchprogram.database import init_db
from matchprogram.logging_config import setup_logging
from matchprogram.routes import check_ins, match_program, match_results, sessions

logger = logging.getLogger(__name__)

app = FastAPI(title="Match Program API")

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
]
_cors_origins.extend(CORS_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(sessions.router, prefix="/api", tags=["sessions"])
app.include_router(check_ins.router, prefix="/api", tags=["check-ins"])
app.include_router(match_program.router, prefix="/api", tags=["match-program"])
app.include_router(match_results.router, prefix="/api", tags=["match-results"])


@app.on_event("startup")
def on_startup():
    setup_logging(getattr(logging, LOG_LEVEL, logging.INFO))
    init_db()  # Use centralized init_db() which imports models and creates tables
    logger.info("Match program API started (%d courts, %d rounds)", MAX_COURTS, MAX_ROUNDS)


@app.get("/api/health")
def health_check():
    return {"app_name": "Match Program API", "status": "healthy"}
