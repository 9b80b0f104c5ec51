# app/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from src.config import settings
from src.Application import instanceRoute, conversationRoute, realtimeRoute
from src.Application.dependecie import dependencies
from src.Infrastructure import PostgresContext

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Shutdown: fecha as views ao vivo, o LISTEN e o pool
    await dependencies.realtimeSyncService().close_all()
    await dependencies.realtimeGateway().close()
    PostgresContext.close_all_connections()
    logger.info("[App] 👋 Recursos liberados")


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan
)

# Registrar Rotas
app.include_router(instanceRoute, prefix=settings.API_V1_STR)
app.include_router(conversationRoute, prefix=settings.API_V1_STR)
app.include_router(realtimeRoute, prefix=settings.API_V1_STR)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("src.main:app", host="0.0.0.0", port=8000, reload=True)
