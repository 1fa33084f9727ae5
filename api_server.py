"""
FastAPI сервер для API сертификатов
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from certdesk.api import CertificateAPI
from certdesk.service import CertificateService, create_certificate_service
from config.settings import Settings, get_settings


def setup_logging(settings: Settings):
    """Настройка логирования в файл и консоль"""
    settings.log_file.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(settings.log_file, encoding='utf-8'),
            logging.StreamHandler()
        ]
    )


def build_lifespan(service: CertificateService):
    """Жизненный цикл приложения: таблицы при запуске, закрытие пула при остановке"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.info("Запуск API сервера...")

        service.repository.db_manager.create_tables()
        logging.info("Подключение к БД установлено")

        yield

        logging.info("Остановка API сервера...")
        service.repository.db_manager.dispose()

    return lifespan


def create_app(settings: Optional[Settings] = None,
               service: Optional[CertificateService] = None) -> FastAPI:
    """Создание FastAPI приложения"""
    settings = settings or get_settings()

    settings.create_directories()
    setup_logging(settings)

    if service is None:
        service = create_certificate_service(settings)

    certificate_api = CertificateAPI(
        service,
        api_key=settings.api_key,
        cors_origins=settings.cors_origins_list,
        lifespan=build_lifespan(service)
    )

    app = certificate_api.app
    app.state.certificate_api = certificate_api
    app.state.settings = settings

    logging.getLogger(__name__).info(
        f"API готов. Хранилище PDF: {settings.certificates_path}, каналы: {service.get_channels()}"
    )
    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "api_server:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
