import uvicorn
from astro_backend.settings import settings

if __name__ == "__main__":

    reload = settings.DEBUG_MODE != "production"

    uvicorn.run("astro_backend.server:app", host="0.0.0.0", port=8000, log_level=settings.LOG_LEVEL.lower(), reload=reload, workers=1)
