import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from coldwatch.logging_config import setup_logging
from coldwatch.routes.alerts import router as alerts_router
from coldwatch.routes.devices import router as devices_router

# Initialize logging before anything else
setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Pharmacy Cold-Chain Compliance", version="0.1.0")
logger.info("FastAPI app created")

app.include_router(alerts_router)
app.include_router(devices_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    logger.info("Cold-chain compliance service starting up")
    logger.info("API docs available at http://localhost:8000/docs")


@app.get("/api/health")
async def health_check():
    return {"status": "ok"}
