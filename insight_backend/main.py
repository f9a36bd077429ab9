from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from insight_backend.api import router as report_assembly_router
from insight_backend.config import REPORT_LOG_LEVEL

logging.basicConfig(
    level=getattr(logging, REPORT_LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Insight Reports Backend", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten this in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(report_assembly_router)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
