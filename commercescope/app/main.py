"""CommerceScope FastAPI application.

Stateless scoring service: the host application posts plain JSON
records and gets forecasts, churn scores, and recommendations back.
Nothing is stored between requests.

Usage:
    uvicorn commercescope.app.main:app --host 0.0.0.0 --port 8001 --reload
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from commercescope.app.config import settings
from commercescope.app.routers import churn, forecast, recommendations

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="CommerceScope API",
    description="Demand Forecasting, Churn Scoring & Product Recommendations",
    version="1.0.0",
)

# CORS: allow the storefront admin to call the API
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routers
app.include_router(forecast.router, prefix=settings.api_prefix)
app.include_router(churn.router, prefix=settings.api_prefix)
app.include_router(recommendations.router, prefix=settings.api_prefix)

logger.info("CommerceScope API ready, routes under %s", settings.api_prefix)


@app.get("/")
def root():
    return {"status": "ok", "app": "CommerceScope API", "docs": "/docs"}


@app.get("/health")
def health():
    return {"status": "healthy"}
