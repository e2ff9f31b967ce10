from __future__ import annotations

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from orchestrator.api import stores, system
from orchestrator.api.utils import register_exception_handlers
from orchestrator.logging_config import configure_logging
from orchestrator.settings import Settings

configure_logging()

app = FastAPI(
    title="Store Orchestrator",
    description="Queues and runs Helm lifecycle operations for tenant store instances",
    version="0.1.0",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(Settings.from_env().cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", include_in_schema=False)
def root() -> RedirectResponse:
    """Redirect root URL to Swagger UI docs."""
    return RedirectResponse(url="/docs")


@app.get("/healthz", include_in_schema=False)
def healthz() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(stores.router)
app.include_router(system.router)

register_exception_handlers(app)

if __name__ == "__main__":
    uvicorn.run("orchestrator.main:app", host="0.0.0.0", port=3001, log_level="info")
