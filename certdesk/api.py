"""
API для работы с сертификатами
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from .exceptions import (
    CertificateError, CertificateExistsError, CertificateNotFoundError,
    DocumentNotFoundError, ServiceNotConfiguredError, ValidationError
)
from .models import (
    CHANNEL_EMAIL, CHANNEL_WHATSAPP, Certificate, CertificateCreate, CertificatePage,
    CertificateStats, CertificateUpdate, DeleteResponse, DeliveryReceipt, SendRequest
)
from .service import CertificateService

# HTTP статусы для исключений; проверяются по порядку
ERROR_STATUS_CODES = (
    (ValidationError, 400),
    (CertificateNotFoundError, 404),
    (CertificateExistsError, 409),
    (ServiceNotConfiguredError, 503),
)


class CertificateAPI:
    """API для работы с сертификатами"""

    def __init__(
            self,
            service: CertificateService,
            api_key: Optional[str] = None,
            cors_origins: Optional[List[str]] = None,
            lifespan=None
    ):
        self.service = service
        self.api_key = api_key
        self.logger = logging.getLogger(__name__)

        # Создание FastAPI приложения
        self.app = FastAPI(
            title="Certificate Management API",
            description="API для выдачи и отправки сертификатов",
            version="1.0.0",
            lifespan=lifespan
        )

        if cors_origins:
            self.app.add_middleware(
                CORSMiddleware,
                allow_origins=cors_origins,
                allow_credentials=True,
                allow_methods=["*"],
                allow_headers=["*"],
            )

        self._setup_error_handlers()
        self._setup_routes()

    def _verify_api_key(
            self,
            credentials: Optional[HTTPAuthorizationCredentials] = Depends(HTTPBearer(auto_error=False))
    ) -> bool:
        """Проверка API ключа"""
        if not self.api_key:
            return True
        if credentials is None or credentials.credentials != self.api_key:
            raise HTTPException(status_code=401, detail="Invalid API key")
        return True

    def _status_for(self, exc: CertificateError) -> int:
        for error_class, status_code in ERROR_STATUS_CODES:
            if isinstance(exc, error_class):
                return status_code
        return 500

    def _setup_error_handlers(self):
        """Преобразование исключений в ответы {error, details}"""

        @self.app.exception_handler(CertificateError)
        async def certificate_error_handler(request: Request, exc: CertificateError):
            status_code = self._status_for(exc)
            content = {"error": exc.message, "details": exc.details}

            if isinstance(exc, ServiceNotConfiguredError):
                content["configured"] = False

            if status_code >= 500:
                self.logger.error(f"{request.method} {request.url.path}: {exc.message} ({exc.details})")
            else:
                self.logger.warning(f"{request.method} {request.url.path}: {exc.message}")

            return JSONResponse(status_code=status_code, content=content)

        @self.app.exception_handler(StarletteHTTPException)
        async def http_error_handler(request: Request, exc: StarletteHTTPException):
            self.logger.warning(f"{request.method} {request.url.path}: {exc.status_code} {exc.detail}")
            return JSONResponse(
                status_code=exc.status_code,
                content={"error": str(exc.detail), "details": None},
                headers=getattr(exc, "headers", None)
            )

        @self.app.exception_handler(RequestValidationError)
        async def request_validation_handler(request: Request, exc: RequestValidationError):
            details = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in exc.errors()
            )
            self.logger.warning(f"Ошибка валидации запроса {request.url.path}: {details}")
            return JSONResponse(
                status_code=400,
                content={"error": "Некорректные данные запроса", "details": details}
            )

        @self.app.exception_handler(Exception)
        async def unexpected_error_handler(request: Request, exc: Exception):
            self.logger.exception(f"Неожиданная ошибка {request.method} {request.url.path}: {exc}")
            return JSONResponse(
                status_code=500,
                content={"error": "Внутренняя ошибка сервера", "details": str(exc)}
            )

    def _setup_routes(self):
        """Настройка маршрутов API"""
        service = self.service

        @self.app.get("/health", tags=["monitoring"])
        async def health_check():
            """Проверка здоровья API, БД и файлового хранилища"""
            components = {"api": {"status": "healthy", "message": "API is running"}}

            db_ok = await run_in_threadpool(service.repository.db_manager.health_check)
            components["database"] = {
                "status": "healthy" if db_ok else "unhealthy",
                "message": "Database connection is active" if db_ok else "Database is unreachable"
            }

            base_path = service.storage.base_path
            storage_ok = base_path.exists() and base_path.is_dir()
            components["file_storage"] = {
                "status": "healthy" if storage_ok else "unhealthy",
                "message": f"Certificates directory: {base_path}"
            }
            if storage_ok:
                components["file_storage"]["documents"] = service.storage.get_storage_stats()["documents"]

            all_healthy = all(comp["status"] == "healthy" for comp in components.values())

            return JSONResponse(
                status_code=200 if all_healthy else 503,
                content={
                    "status": "healthy" if all_healthy else "unhealthy",
                    "timestamp": datetime.now().isoformat(),
                    "components": components,
                    "channels": service.get_channels(),
                }
            )

        # Публичная ссылка на PDF, используется в сообщениях получателям
        @self.app.get("/certificates/{certificate_id}.pdf", tags=["documents"])
        async def public_document(certificate_id: str):
            """Публичный PDF сертификата"""
            try:
                path = service.storage.path_for(certificate_id)
            except ValidationError:
                raise DocumentNotFoundError("PDF сертификата не найден")

            if not path.is_file():
                raise DocumentNotFoundError("PDF сертификата не найден")

            return FileResponse(path, media_type="application/pdf")

        router = APIRouter(
            prefix="/certificates",
            tags=["certificates"],
            dependencies=[Depends(self._verify_api_key)]
        )

        @router.get("/stats", response_model=CertificateStats)
        async def get_statistics():
            """Статистика: всего, отправлено, ожидает отправки"""
            return await run_in_threadpool(service.get_statistics)

        @router.get("/channels", response_model=Dict[str, bool])
        async def get_channels():
            """Какие каналы доставки настроены"""
            return service.get_channels()

        @router.post("", response_model=Certificate, status_code=201)
        async def create_certificate(request: CertificateCreate):
            """Создание сертификата и генерация PDF"""
            certificate = await run_in_threadpool(service.create_certificate, request)
            self.logger.info(f"Создан сертификат {certificate.id} ({certificate.certificate_number})")
            return certificate

        @router.get("", response_model=CertificatePage)
        async def list_certificates(
                limit: Optional[int] = Query(None),
                offset: int = Query(0)
        ):
            """Список сертификатов, новые первыми"""
            return await run_in_threadpool(service.list_certificates, limit, offset)

        @router.get("/{certificate_id}", response_model=Certificate)
        async def get_certificate(certificate_id: str):
            """Получение сертификата"""
            return await run_in_threadpool(service.get_certificate, certificate_id)

        @router.api_route("/{certificate_id}", methods=["PUT", "PATCH"], response_model=Certificate)
        async def update_certificate(certificate_id: str, request: CertificateUpdate):
            """Частичное обновление сертификата"""
            return await run_in_threadpool(service.update_certificate, certificate_id, request)

        @router.delete("/{certificate_id}", response_model=DeleteResponse)
        async def delete_certificate(certificate_id: str):
            """Удаление сертификата и его PDF"""
            removed = await run_in_threadpool(service.delete_certificate, certificate_id)
            return DeleteResponse(success=removed, message="Certificate deleted successfully")

        @router.post("/{certificate_id}/send-whatsapp", response_model=DeliveryReceipt)
        async def send_whatsapp(certificate_id: str, http_request: Request,
                                body: Optional[SendRequest] = None):
            """Отправка сертификата в WhatsApp"""
            phone_number = body.phone_number if body else None
            return await run_in_threadpool(
                service.send_certificate, certificate_id, CHANNEL_WHATSAPP,
                phone_number, str(http_request.base_url)
            )

        @router.post("/{certificate_id}/send-email", response_model=DeliveryReceipt)
        async def send_email(certificate_id: str, http_request: Request,
                             body: Optional[SendRequest] = None):
            """Отправка сертификата по email"""
            email = body.email if body else None
            return await run_in_threadpool(
                service.send_certificate, certificate_id, CHANNEL_EMAIL,
                email, str(http_request.base_url)
            )

        @router.post("/{certificate_id}/regenerate", response_model=Certificate)
        async def regenerate_document(certificate_id: str):
            """Повторная генерация PDF"""
            return await run_in_threadpool(service.regenerate_document, certificate_id)

        @router.get("/{certificate_id}/download")
        async def download_certificate(certificate_id: str):
            """Скачивание PDF сертификата"""
            path, filename = await run_in_threadpool(service.get_document, certificate_id)
            return FileResponse(path, media_type="application/pdf", filename=filename)

        self.app.include_router(router)
