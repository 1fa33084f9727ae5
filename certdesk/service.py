"""
Основная бизнес-логика жизненного цикла сертификата.

Создание: валидация -> проверка уникальности номера -> генерация PDF ->
запись в БД. Отправка: загрузка записи -> отправка по каналу ->
установка флага доставки этого канала.
"""

import logging
import uuid
from datetime import date
from pathlib import Path
from typing import Dict, Optional, Tuple

from config.settings import Settings
from .database import CertificateRecord, CertificateRepository, DatabaseManager
from .dispatchers import EmailDispatcher, NotificationDispatcher, WhatsAppDispatcher
from .exceptions import (
    CertificateError, CertificateExistsError, CertificateNotFoundError, DocumentNotFoundError,
    ServiceNotConfiguredError, StorageError, ValidationError
)
from .generator import CertificatePDFGenerator
from .models import (
    CHANNEL_EMAIL, CHANNEL_WHATSAPP, Certificate, CertificateCreate, CertificatePage,
    CertificateStats, CertificateUpdate, DeliveryReceipt, Pagination
)
from .storage import DocumentStorage

logger = logging.getLogger(__name__)


class CertificateService:
    """Сервис для работы с сертификатами."""

    def __init__(self, repository: CertificateRepository,
                 storage: DocumentStorage,
                 generator: CertificatePDFGenerator,
                 dispatchers: Dict[str, NotificationDispatcher],
                 public_base_url: Optional[str] = None,
                 default_page_size: int = 100,
                 max_page_size: int = 500):
        """Инициализация сервиса."""
        self.repository = repository
        self.storage = storage
        self.generator = generator
        self.dispatchers = dispatchers
        self.public_base_url = public_base_url
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def create_certificate(self, request: CertificateCreate) -> Certificate:
        """
        Создает новый сертификат.

        Если PDF не удалось сгенерировать, запись в БД не создается.

        Args:
            request: Запрос на создание сертификата

        Returns:
            Certificate: Сохраненный сертификат

        Raises:
            ValidationError: Не указано имя получателя или номер
            CertificateExistsError: Номер сертификата уже занят
            RenderError: Ошибка генерации PDF
            DatabaseError: Ошибка БД
        """
        if not request.recipient_name or not request.certificate_number:
            raise ValidationError("Имя получателя и номер сертификата обязательны")

        logger.info(f"Создание сертификата {request.certificate_number} для {request.recipient_name}")

        if self.repository.get_certificate_by_number(request.certificate_number):
            logger.warning(f"Номер сертификата {request.certificate_number} уже существует")
            raise CertificateExistsError(
                f"Сертификат с номером {request.certificate_number} уже существует"
            )

        draft = Certificate(
            id=str(uuid.uuid4()),
            issued_year=date.today().year,
            **request.model_dump()
        )

        document_path = self.generator.render(draft)

        data = request.model_dump()
        data.update(id=draft.id, issued_year=draft.issued_year, document_path=str(document_path))

        try:
            record = self.repository.create_certificate(data)
        except CertificateError as e:
            # Без записи в БД PDF никому не нужен
            logger.warning(f"Сертификат {request.certificate_number} не сохранен ({e.message}), удаляем PDF")
            self._remove_document(document_path)
            raise

        logger.info(f"Сертификат {record.id} ({record.certificate_number}) успешно создан")
        return self._to_model(record)

    def get_certificate(self, certificate_id: str) -> Certificate:
        """
        Получает сертификат по ID.

        Raises:
            CertificateNotFoundError: Если сертификат не найден
        """
        return self._to_model(self._load(certificate_id))

    def list_certificates(self, limit: Optional[int] = None, offset: int = 0) -> CertificatePage:
        """
        Получает страницу сертификатов, новые первыми.

        Args:
            limit: Размер страницы (ограничивается max_page_size)
            offset: Смещение

        Returns:
            CertificatePage: Сертификаты и параметры пагинации
        """
        limit = self.default_page_size if not limit or limit < 1 else min(limit, self.max_page_size)
        offset = max(offset or 0, 0)

        records = self.repository.list_certificates(limit, offset)
        total = self.repository.count_all()

        return CertificatePage(
            data=[self._to_model(record) for record in records],
            pagination=Pagination(
                total=total,
                limit=limit,
                offset=offset,
                hasMore=offset + limit < total,
            ),
        )

    def update_certificate(self, certificate_id: str, request: CertificateUpdate) -> Certificate:
        """
        Частично обновляет сертификат.

        PDF при этом не перегенерируется, для этого есть regenerate_document.

        Raises:
            CertificateNotFoundError: Если сертификат не найден
            CertificateExistsError: Новый номер уже занят
        """
        changes = request.changes()
        logger.info(f"Обновление сертификата {certificate_id}: {sorted(changes)}")

        record = self.repository.update_certificate(certificate_id, changes)
        if record is None:
            raise CertificateNotFoundError(f"Сертификат {certificate_id} не найден")

        return self._to_model(record)

    def delete_certificate(self, certificate_id: str) -> bool:
        """
        Удаляет сертификат и его PDF.

        Сначала удаляется строка в БД, затем файл. Файл удаляется даже
        если удаление строки завершилось ошибкой; ошибка удаления файла
        только логируется.

        Returns:
            bool: True если сертификат удален

        Raises:
            CertificateNotFoundError: Если сертификат не найден
        """
        record = self._load(certificate_id)
        document_path = record.document_path

        logger.info(f"Удаление сертификата {certificate_id}")

        try:
            removed = self.repository.delete_certificate(certificate_id)
        finally:
            if document_path:
                self._remove_document(document_path)

        if not removed:
            raise CertificateNotFoundError(f"Сертификат {certificate_id} уже удален")

        logger.info(f"Сертификат {certificate_id} удален")
        return removed

    def regenerate_document(self, certificate_id: str) -> Certificate:
        """
        Перегенерирует PDF существующего сертификата.

        Файл <id>.pdf перезаписывается; при ошибке рендеринга запись не
        меняется.
        """
        certificate = self._to_model(self._load(certificate_id))

        document_path = self.generator.render(certificate)
        self.repository.set_document_path(certificate_id, str(document_path))

        logger.info(f"PDF сертификата {certificate_id} перегенерирован")
        return self.get_certificate(certificate_id)

    def get_document(self, certificate_id: str) -> Tuple[Path, str]:
        """
        Возвращает путь к PDF и имя файла для скачивания.

        Raises:
            CertificateNotFoundError: Если сертификат не найден
            DocumentNotFoundError: Если PDF отсутствует
        """
        certificate = self.get_certificate(certificate_id)

        if not self.storage.exists(certificate.document_path):
            raise DocumentNotFoundError(f"PDF сертификата {certificate_id} не найден")

        return Path(certificate.document_path), certificate.download_filename

    def send_certificate(self, certificate_id: str, channel: str,
                         destination: Optional[str] = None,
                         base_url: Optional[str] = None) -> DeliveryReceipt:
        """
        Отправляет сертификат получателю по выбранному каналу.

        Порядок проверок: канал настроен -> сертификат существует ->
        есть адрес получателя. Флаг доставки канала устанавливается
        только после успешной отправки; при ошибке провайдера флаги не
        меняются и отправку можно повторить.

        Args:
            certificate_id: ID сертификата
            channel: Канал доставки (whatsapp или email)
            destination: Адрес получателя вместо сохраненного в записи
            base_url: Адрес сервиса для ссылки на PDF

        Raises:
            ServiceNotConfiguredError: Канал не настроен
            CertificateNotFoundError: Сертификат не найден
            DocumentNotFoundError: У сертификата нет PDF
            ValidationError: Нет адреса получателя
            DispatchError: Провайдер вернул ошибку
        """
        dispatcher = self.dispatchers.get(channel)
        if dispatcher is None:
            raise ValidationError(f"Неизвестный канал доставки: {channel}")

        if not dispatcher.is_configured():
            logger.warning(f"Попытка отправки через ненастроенный канал {channel}")
            raise ServiceNotConfiguredError(channel)

        certificate = self.get_certificate(certificate_id)

        recipient = destination or certificate.contact_for(channel)
        if not recipient:
            if channel == CHANNEL_WHATSAPP:
                raise ValidationError("Номер телефона обязателен")
            raise ValidationError("Email адрес обязателен")

        if not self.storage.exists(certificate.document_path):
            raise DocumentNotFoundError(f"PDF сертификата {certificate_id} не найден")

        document_url = None
        base = self.public_base_url or base_url
        if base:
            document_url = self.storage.public_url(base, certificate.id)

        logger.info(f"Отправка сертификата {certificate_id} через {channel}")

        receipt = dispatcher.dispatch(
            recipient,
            certificate,
            Path(certificate.document_path),
            document_url,
        )

        self.repository.mark_delivered(certificate_id, channel, True)
        logger.info(f"Сертификат {certificate_id} отправлен через {channel} на {receipt.destination}")

        return receipt

    def send_via_whatsapp(self, certificate_id: str, phone_number: Optional[str] = None,
                          base_url: Optional[str] = None) -> DeliveryReceipt:
        """Отправка сертификата в WhatsApp."""
        return self.send_certificate(certificate_id, CHANNEL_WHATSAPP, phone_number, base_url)

    def send_via_email(self, certificate_id: str, email: Optional[str] = None,
                       base_url: Optional[str] = None) -> DeliveryReceipt:
        """Отправка сертификата по email."""
        return self.send_certificate(certificate_id, CHANNEL_EMAIL, email, base_url)

    def get_statistics(self) -> CertificateStats:
        """Получает статистику по сертификатам."""
        return CertificateStats(**self.repository.get_statistics())

    def get_channels(self) -> Dict[str, bool]:
        """Состояние настройки каналов доставки."""
        return {name: dispatcher.is_configured() for name, dispatcher in self.dispatchers.items()}

    def _load(self, certificate_id: str) -> CertificateRecord:
        record = self.repository.get_certificate_by_id(certificate_id)
        if record is None:
            raise CertificateNotFoundError(f"Сертификат {certificate_id} не найден")
        return record

    def _remove_document(self, document_path):
        """Удаляет PDF, ошибки только логируются."""
        try:
            if self.storage.delete_document(document_path):
                logger.info(f"PDF {document_path} удален")
            else:
                logger.warning(f"PDF {document_path} уже отсутствует")
        except StorageError as e:
            logger.error(f"Не удалось удалить PDF {document_path}: {e.details}")

    def _to_model(self, record: CertificateRecord) -> Certificate:
        """Конвертирует объект БД в Pydantic модель."""
        return Certificate.model_validate(record)


def create_certificate_service(settings: Settings) -> CertificateService:
    """
    Собирает сервис из настроек.

    Args:
        settings: Настройки приложения

    Returns:
        CertificateService: Сервис с подключенной БД, хранилищем,
        генератором PDF и каналами доставки
    """
    db_manager = DatabaseManager(settings.database_url)
    repository = CertificateRepository(db_manager)
    storage = DocumentStorage(settings.certificates_path)

    generator = CertificatePDFGenerator(
        storage,
        company_name=settings.company_name,
        company_website=settings.company_website,
        watermark=settings.certificate_watermark,
        timeout_ms=settings.render_timeout_ms,
    )

    dispatchers = {
        CHANNEL_WHATSAPP: WhatsAppDispatcher(
            settings.twilio_account_sid,
            settings.twilio_auth_token,
            from_number=settings.twilio_whatsapp_number,
            attach_document=settings.whatsapp_attach_document,
            default_country_code=settings.phone_default_country_code,
            company_name=settings.company_name,
            company_website=settings.company_website,
        ),
        CHANNEL_EMAIL: EmailDispatcher(
            settings.smtp_host,
            settings.smtp_port,
            settings.email_user,
            settings.email_password,
            sender=settings.sender_email,
            sender_name=settings.email_from_name,
            use_tls=settings.smtp_use_tls,
            use_ssl=settings.smtp_use_ssl,
            timeout=settings.smtp_timeout,
            company_name=settings.email_from_name,
            company_website=settings.company_website,
        ),
    }

    return CertificateService(
        repository,
        storage,
        generator,
        dispatchers,
        public_base_url=settings.public_base_url,
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
    )
