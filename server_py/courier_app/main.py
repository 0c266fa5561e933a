import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from courier_app.core.config import settings
from courier_app.api.v1.api import api_router
from courier_app.websockets.feed_ws import router as feed_ws_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

# Настройка CORS
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Подключаем роутеры API v1
app.include_router(api_router, prefix=settings.API_V1_STR)

# Вебсокет ленты заказов курьера
app.include_router(feed_ws_router)
