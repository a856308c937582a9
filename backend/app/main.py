from dotenv import load_dotenv
import pathlib

# Load .env from backend folder (parent of app)
env_path = pathlib.Path(__file__).parent.parent / '.env'
load_dotenv(env_path)
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import asyncio
import logging
import sys

from scribe import __version__, get_config
from scribe.generators import GENERATORS
# Recorder API
from scribe_api import router as recorder_router

# ===== WINDOWS FIX FOR PLAYWRIGHT =====
# Fix for Windows: Playwright needs ProactorEventLoop on Windows
if sys.platform == 'win32':
    asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())
# ======================================

config = get_config()

logging.basicConfig(
    level=getattr(logging, config.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Scribe Recorder", version=__version__)

# CORS Configuration
# In production, set CORS_ORIGINS environment variable to comma-separated allowed origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept"],
)

app.include_router(recorder_router)


# ============ UI Frameworks ============
@app.get("/api/frameworks")
async def get_available_frameworks():
    """Get list of supported frameworks for script generation"""
    return {
        "frameworks": [framework.value for framework in GENERATORS]
    }


# ============ Health Check ============
@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": __version__,
        "platform": sys.platform
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
