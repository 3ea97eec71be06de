"""FastAPI entrypoint for the lunch ordering bot."""

import logging

from fastapi import FastAPI

from lunchbot.api.v1.api import api_router
from lunchbot.api.webhook import router as webhook_router
from lunchbot.core.config import settings
from lunchbot.db import session as db_session
from lunchbot.db.base import Base
from lunchbot.services.settings_service import ensure_default_settings

logger = logging.getLogger(__name__)

app = FastAPI(title="Lunch Ordering Bot")
app.include_router(api_router, prefix="/api/v1")
app.include_router(webhook_router)


@app.on_event("startup")
def startup() -> None:
    if not settings.line_channel_access_token:
        logger.warning("LINE_CHANNEL_ACCESS_TOKEN not set; notifications are logged only.")
    if not settings.admin_username or not settings.admin_password:
        logger.warning("ADMIN_USERNAME/ADMIN_PASSWORD not set; admin API login is disabled.")
    Base.metadata.create_all(bind=db_session.engine)
    with db_session.SessionLocal() as session:
        try:
            ensure_default_settings(session)
            logger.info("[BOOTSTRAP] ordering settings ready (timezone=%s)", settings.operating_timezone)
        except Exception:
            logger.exception("[BOOTSTRAP] Default settings seeding failed; continuing startup.")
