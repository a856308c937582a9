"""
Startup script for the Scribe Recorder backend
Use this instead of 'uvicorn main:app' on Windows
"""

import sys
import os
import asyncio

# Force unbuffered output
os.environ['PYTHONUNBUFFERED'] = '1'

# Set Windows event loop policy before any Playwright import
if sys.platform == 'win32':
    asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())

if __name__ == "__main__":
    import uvicorn

    host = os.getenv("SCRIBE_HOST", "0.0.0.0")
    port = int(os.getenv("SCRIBE_PORT", "8000"))

    print("\n Starting Scribe Recorder Server...", flush=True)
    print(f" Server will run on: http://localhost:{port}", flush=True)
    print(f" API Docs available at: http://localhost:{port}/docs", flush=True)
    print("\n" + "="*50, flush=True)

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=False,
        log_level=os.getenv("SCRIBE_LOG_LEVEL", "info").lower(),
        access_log=True
    )
