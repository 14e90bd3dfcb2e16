import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from calvapi.config import settings

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from calvapi.api.actions import router as actions_router
from calvapi.services import cal_api, vapi
from calvapi.services.responses import CORS_HEADERS


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await cal_api.close_client()
    await vapi.close_client()


app = FastAPI(title="Cal.com Vapi Integration", version="0.1.0", lifespan=lifespan)


@app.get("/health")
async def health():
    return JSONResponse({"status": "ok"}, headers=CORS_HEADERS)


# Catch-all action route; registered last so /health wins.
app.include_router(actions_router)
