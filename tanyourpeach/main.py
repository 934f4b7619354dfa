import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tanyourpeach.core.config import LOG_LEVEL
from tanyourpeach.core.errors import register_error_handlers
from tanyourpeach.database import create_db_and_tables
from tanyourpeach.routers import appointments
from tanyourpeach.routers import auth
from tanyourpeach.routers import availability
from tanyourpeach.routers import financial_logs, receipts
from tanyourpeach.routers import inventory, usage
from tanyourpeach.routers import services
from tanyourpeach.routers import users

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    logger.info("Tan Your Peach API started")
    yield


app = FastAPI(title="Tan Your Peach API", lifespan=lifespan)
register_error_handlers(app)

app.include_router(users.router)
app.include_router(auth.router)
app.include_router(services.router)
app.include_router(availability.router)
app.include_router(appointments.router)
app.include_router(inventory.router)
app.include_router(usage.router)
app.include_router(receipts.router)
app.include_router(financial_logs.router)


@app.get("/")
def root():
    return {"message": "Tan Your Peach API running"}
