from pathlib import Path

from fastapi import FastAPI

from papelaria.config import settings
from papelaria.logging_config import get_logger, setup_logging
from papelaria.routers import admin, webhook
from papelaria.runtime import get_engine

setup_logging(settings.log_level, settings.log_file)

logger = get_logger("main")

app = FastAPI(
    title="Papelaria BH Attendant",
    description="WhatsApp attendant for print and copy orders",
    version="0.1.0",
)

app.include_router(webhook.router)
app.include_router(admin.router)


@app.on_event("startup")
async def prepare_storage() -> None:
    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
    logger.info("Attendant started", extra={"context": {"shop": settings.shop_name, "upload_dir": settings.upload_dir}})


@app.on_event("shutdown")
async def stop_timers() -> None:
    if get_engine.cache_info().currsize:
        get_engine().shutdown()


@app.get("/health")
async def health():
    return {"status": "ok"}
