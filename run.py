"""
Run the gate API with uvicorn.
Usage: python3 run.py   (HOST / PORT / DEBUG come from the environment or .env)
"""
import uvicorn

from config import settings

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        # Logging is configured by the app on startup
        log_config=None,
    )
