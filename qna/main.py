import logging
from fastapi import FastAPI
from qna.config import get_settings
from qna.api.routes import questions

settings = get_settings()

# Configure application logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# Set log level for qna modules
logger = logging.getLogger("qna")
logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)

app = FastAPI(
    title=settings.app_name,
    description="Question & answer knowledge store with CSV/JSON interchange",
    version="0.1.0",
)

# Include routers
app.include_router(questions.router, prefix="/api/qna", tags=["Q&A"])


@app.get("/")
async def root():
    return {
        "message": "Welcome to the Q&A knowledge store",
        "version": "0.1.0",
        "endpoints": {
            "qna": "/api/qna",
            "export": "/api/qna/export",
            "csv": "/api/qna/csv",
            "health": "/health",
            "docs": "/docs",
        },
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": settings.app_name}
