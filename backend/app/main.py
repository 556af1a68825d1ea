import os
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.middleware.error_handler import register_error_handlers
from database import create_db_and_tables
from routes import audits, exports, photos

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Energy Audit API",
    version="1.0.0",
    description="Residential energy audit records, photos, HOT2000 and PDF exports"
)

# CORS configuration
allowed_origins = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)

register_error_handlers(app)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"[REQUEST] {request.method} {request.url.path}")
    response = await call_next(request)
    logger.info(f"[RESPONSE] {request.method} {request.url.path} -> {response.status_code}")
    return response


@app.on_event("startup")
async def startup_event():
    """Initialize database tables"""
    logger.info("Initializing database tables...")
    await create_db_and_tables()
    logger.info("Database tables initialized")


app.include_router(audits.router, prefix="/api/audits")
app.include_router(photos.router, prefix="/api")
app.include_router(exports.router, prefix="/api")


@app.get("/health")
async def health():
    return {"status": "healthy"}
