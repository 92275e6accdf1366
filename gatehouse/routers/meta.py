# gatehouse/routers/meta.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db

router = APIRouter(tags=["meta"])


@router.get("/health", response_model=dict)
def health(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"success": True, "data": {"status": "ok", "version": settings.app_version, "env": settings.app_env}}
