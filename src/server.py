import uvicorn
from academy_backend.settings import settings

if __name__ == "__main__":

    uvicorn.run(
        "academy_backend.server:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        log_level="debug" if settings.DEBUG_MODE != "production" else "info",
        reload=settings.DEBUG_MODE != "production",
        workers=1,
    )
