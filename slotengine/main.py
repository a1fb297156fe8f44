from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from slotengine.availability.router import router as availability_router
from slotengine.config import settings
from slotengine.database import create_table_if_not_exists


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create the table on startup in development (the CRUD layer owns it elsewhere)
    if settings.app_env == "development":
        settings.print_env_summary()
        create_table_if_not_exists()
        logger.info(f"DynamoDB table {settings.db.table_name} ready")
    yield


app = FastAPI(
    title="Slot Engine API",
    version="0.1.0",
    lifespan=lifespan,
)

allowed_origins = (
    ["*"] if settings.app_env == "development" else [str(settings.frontend_url).rstrip("/")]
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(availability_router, prefix="/storefronts", tags=["availability"])


@app.get("/health")
def health():
    return {"message": "OK"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("slotengine.main:app", host="0.0.0.0", port=8000, reload=True)
