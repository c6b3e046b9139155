import logging
import os
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, text

from orderdesk.config import settings
from orderdesk.database import get_session

logger = logging.getLogger(__name__)

router = APIRouter()


def _invoice_storage_status() -> str:
    path = settings.invoice_dir
    if not path.exists():
        # created lazily on first invoice
        return "ok"
    return "ok" if os.access(path, os.W_OK) else "read_only"


@router.get("/check")
def health_check(session: Session = Depends(get_session)):
    db_status = "ok"

    try:
        session.exec(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check database ping failed")
        db_status = "failed"

    invoices = _invoice_storage_status()

    return {
        "status": "ok" if db_status == "ok" and invoices == "ok" else "degraded",
        "env": settings.env,
        "database": db_status,
        "invoice_storage": invoices,
        "timestamp": datetime.utcnow().isoformat(),
    }
