import logging

from fastapi import FastAPI

from fittrack.config import settings
from fittrack.profile.router import router as profile_router

logging.basicConfig(level=settings.log_level)

app = FastAPI(title="fittrack", version="0.1.0")
app.include_router(profile_router)


@app.get("/")
async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "profile": {
            "profile": "/profile",
            "avatar": "/profile/avatar",
            "weight_history": "/profile/weight-history",
            "attendance": "/profile/attendance",
            "attendance_cycle": "/profile/attendance/{day}/cycle",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
