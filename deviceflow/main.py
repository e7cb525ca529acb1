"""
Главный файл DeviceFlow: учёт устройств и заявки с уведомлениями в Slack
"""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from deviceflow.core.config import settings
from deviceflow.core.database import Base, engine
from deviceflow.core.exceptions import DeviceFlowError
from deviceflow.modules.inventory import api as inventory_api
from deviceflow.modules.inventory.services.slack_service import SlackService

# Настройка логирования
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Учёт устройств и заявки на выдачу",
    version="1.0.0",
)

# Шлюз уведомлений один на приложение; в тестах подменяется через dependency_overrides
app.state.notification_gateway = SlackService.from_settings(settings)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DeviceFlowError)
async def _deviceflow_exception_handler(request: Request, exc: DeviceFlowError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(inventory_api.router)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok", "service": "deviceflow"}


@app.on_event("startup")
async def on_startup():
    """Инициализация при старте приложения"""
    logger.info("Запуск DeviceFlow...")

    # Таблицы создаём best-effort, схему в проде ведут скрипты из deviceflow/scripts
    try:
        import deviceflow.modules.inventory.models  # noqa: F401

        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.warning(f"Не удалось создать таблицы: {e}")

    if settings.slack_configured():
        logger.info(f"[Slack] Уведомления включены, канал {settings.slack_channel_id}")
    else:
        logger.warning("[Slack] Интеграция не настроена, уведомления отключены")

    logger.info("DeviceFlow запущен успешно")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
