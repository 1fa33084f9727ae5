# certdesk/database.py - хранилище записей сертификатов

"""
Модели SQLAlchemy для работы с базой данных.
"""

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    create_engine, Column, String, Integer, DateTime, Boolean, Text, Index,
    false, or_, text, update
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from .exceptions import CertificateExistsError, DatabaseError, ValidationError
from .models import CHANNELS, EDITABLE_FIELDS

logger = logging.getLogger(__name__)

# Базовый класс для моделей
Base = declarative_base()


class CertificateRecord(Base):
    """Модель сертификата."""

    __tablename__ = "certificates"

    # Основные поля
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    recipient_name = Column(String(255), nullable=False)
    certificate_number = Column(String(100), unique=True, nullable=False, index=True)
    award_rera_number = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    phone_number = Column(String(32), nullable=True)
    email = Column(String(255), nullable=True)
    issued_year = Column(Integer, nullable=True)

    # Путь к PDF, устанавливается только после успешного рендеринга
    document_path = Column(String(500), nullable=True)

    # Статус доставки по каналам
    whatsapp_sent = Column(Boolean, default=False, server_default=false(), nullable=False)
    whatsapp_sent_at = Column(DateTime, nullable=True)
    email_sent = Column(Boolean, default=False, server_default=false(), nullable=False)
    email_sent_at = Column(DateTime, nullable=True)

    # Метаданные
    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(DateTime, default=datetime.now, nullable=False)

    __table_args__ = (
        Index('idx_certificate_created_at', 'created_at'),
        Index('idx_certificate_whatsapp_sent', 'whatsapp_sent'),
        Index('idx_certificate_email_sent', 'email_sent'),
    )

    def __repr__(self):
        return f"<CertificateRecord(id={self.id}, number={self.certificate_number})>"


def _delivered_condition():
    return or_(CertificateRecord.whatsapp_sent == True,  # noqa: E712
               CertificateRecord.email_sent == True)  # noqa: E712


class DatabaseManager:
    """Менеджер для работы с базой данных."""

    def __init__(self, database_url: str):
        """
        Инициализация менеджера БД.

        Args:
            database_url: URL подключения к БД
        """
        engine_kwargs = {"pool_pre_ping": True, "echo": False}
        if database_url.startswith("sqlite"):
            # Запросы FastAPI обрабатываются в пуле потоков
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        else:
            engine_kwargs["pool_recycle"] = 3600

        self.engine = create_engine(database_url, **engine_kwargs)

        # Объекты остаются доступны после закрытия сессии
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine
        )

    def create_tables(self):
        """Создает все таблицы в базе данных."""
        Base.metadata.create_all(bind=self.engine)
        logger.info("Таблицы базы данных созданы успешно")

    def drop_tables(self):
        """Удаляет все таблицы из базы данных."""
        Base.metadata.drop_all(bind=self.engine)
        logger.info("Таблицы базы данных удалены")

    def get_session(self) -> Session:
        """Возвращает новую сессию для работы с БД."""
        return self.SessionLocal()

    def health_check(self) -> bool:
        """Проверяет подключение к базе данных."""
        try:
            with self.get_session() as session:
                session.execute(text("SELECT 1"))
                return True
        except SQLAlchemyError as e:
            logger.error(f"Ошибка подключения к БД: {e}")
            return False

    def dispose(self):
        """Закрывает пул соединений."""
        self.engine.dispose()


class CertificateRepository:
    """Репозиторий для работы с сертификатами."""

    def __init__(self, db_manager: DatabaseManager):
        """
        Инициализация репозитория.

        Args:
            db_manager: Менеджер базы данных
        """
        self.db_manager = db_manager

    def create_certificate(self, certificate_data: dict) -> CertificateRecord:
        """
        Создает новый сертификат.

        Args:
            certificate_data: Данные сертификата

        Returns:
            CertificateRecord: Сохраненная запись с датами создания и изменения

        Raises:
            CertificateExistsError: Если номер сертификата уже занят
            DatabaseError: При ошибке БД
        """
        now = datetime.now()
        data = dict(certificate_data)
        data.setdefault("created_at", now)
        data.setdefault("updated_at", now)

        with self.db_manager.get_session() as session:
            certificate = CertificateRecord(**data)
            session.add(certificate)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise CertificateExistsError(
                    f"Сертификат с номером {data.get('certificate_number')} уже существует",
                    str(e.orig)
                )
            except SQLAlchemyError as e:
                session.rollback()
                raise DatabaseError("Ошибка сохранения сертификата", str(e))

            return certificate

    def get_certificate_by_id(self, certificate_id: str) -> Optional[CertificateRecord]:
        """
        Получает сертификат по ID.

        Args:
            certificate_id: ID сертификата

        Returns:
            Optional[CertificateRecord]: Сертификат или None
        """
        try:
            with self.db_manager.get_session() as session:
                return session.get(CertificateRecord, certificate_id)
        except SQLAlchemyError as e:
            raise DatabaseError("Ошибка получения сертификата", str(e))

    def get_certificate_by_number(self, certificate_number: str) -> Optional[CertificateRecord]:
        """
        Получает сертификат по номеру.

        Args:
            certificate_number: Номер сертификата

        Returns:
            Optional[CertificateRecord]: Сертификат или None
        """
        try:
            with self.db_manager.get_session() as session:
                return session.query(CertificateRecord).filter(
                    CertificateRecord.certificate_number == certificate_number
                ).first()
        except SQLAlchemyError as e:
            raise DatabaseError("Ошибка поиска сертификата", str(e))

    def list_certificates(self, limit: int = 100, offset: int = 0) -> List[CertificateRecord]:
        """
        Получает страницу сертификатов, новые первыми.

        Args:
            limit: Размер страницы
            offset: Смещение

        Returns:
            List[CertificateRecord]: Список сертификатов
        """
        try:
            with self.db_manager.get_session() as session:
                return session.query(CertificateRecord).order_by(
                    CertificateRecord.created_at.desc(),
                    CertificateRecord.id.desc()
                ).limit(limit).offset(offset).all()
        except SQLAlchemyError as e:
            raise DatabaseError("Ошибка получения списка сертификатов", str(e))

    def update_certificate(self, certificate_id: str, fields: dict) -> Optional[CertificateRecord]:
        """
        Частично обновляет сертификат.

        Изменяются только редактируемые поля; id, флаги доставки и путь
        к документу через этот метод не меняются. updated_at обновляется
        всегда.

        Args:
            certificate_id: ID сертификата
            fields: Новые значения полей

        Returns:
            Optional[CertificateRecord]: Обновленный сертификат или None если не найден
        """
        changes = {key: value for key, value in fields.items() if key in EDITABLE_FIELDS}

        with self.db_manager.get_session() as session:
            certificate = session.get(CertificateRecord, certificate_id)
            if certificate is None:
                return None

            for key, value in changes.items():
                setattr(certificate, key, value)
            certificate.updated_at = datetime.now()

            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise CertificateExistsError(
                    f"Сертификат с номером {changes.get('certificate_number')} уже существует",
                    str(e.orig)
                )
            except SQLAlchemyError as e:
                session.rollback()
                raise DatabaseError("Ошибка обновления сертификата", str(e))

            return certificate

    def set_document_path(self, certificate_id: str, document_path: str) -> bool:
        """Сохраняет путь к сгенерированному PDF."""
        return self._execute_update(
            certificate_id,
            {"document_path": document_path, "updated_at": datetime.now()}
        )

    def mark_delivered(self, certificate_id: str, channel: str, sent: bool = True) -> bool:
        """
        Устанавливает флаг доставки по каналу.

        Флаг и время отправки меняются одним UPDATE: время заполнено
        тогда и только тогда, когда флаг установлен.

        Args:
            certificate_id: ID сертификата
            channel: Канал доставки (whatsapp или email)
            sent: Новое значение флага

        Returns:
            bool: True если запись обновлена, False если не найдена
        """
        if channel not in CHANNELS:
            raise ValidationError(f"Неизвестный канал доставки: {channel}")

        now = datetime.now()
        return self._execute_update(
            certificate_id,
            {
                f"{channel}_sent": sent,
                f"{channel}_sent_at": now if sent else None,
                "updated_at": now,
            }
        )

    def delete_certificate(self, certificate_id: str) -> bool:
        """
        Удаляет сертификат.

        Returns:
            bool: True если строка удалена сейчас, False если ее уже не было
        """
        with self.db_manager.get_session() as session:
            try:
                deleted = session.query(CertificateRecord).filter(
                    CertificateRecord.id == certificate_id
                ).delete(synchronize_session=False)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise DatabaseError("Ошибка удаления сертификата", str(e))

        return deleted > 0

    def count_all(self) -> int:
        """Общее количество сертификатов."""
        with self.db_manager.get_session() as session:
            return session.query(CertificateRecord).count()

    def count_delivered(self) -> int:
        """Количество сертификатов, отправленных хотя бы по одному каналу."""
        with self.db_manager.get_session() as session:
            return session.query(CertificateRecord).filter(_delivered_condition()).count()

    def count_delivered_via(self, channel: str) -> int:
        """Количество сертификатов, отправленных по каналу."""
        if channel not in CHANNELS:
            raise ValidationError(f"Неизвестный канал доставки: {channel}")

        column = getattr(CertificateRecord, f"{channel}_sent")
        with self.db_manager.get_session() as session:
            return session.query(CertificateRecord).filter(column == True).count()  # noqa: E712

    def get_statistics(self) -> dict:
        """
        Получает статистику по сертификатам.

        Returns:
            dict: Статистика
        """
        try:
            total = self.count_all()
            delivered = self.count_delivered()

            return {
                "total": total,
                "delivered": delivered,
                "pending": total - delivered,
                "whatsapp_sent": self.count_delivered_via("whatsapp"),
                "email_sent": self.count_delivered_via("email"),
            }
        except SQLAlchemyError as e:
            raise DatabaseError("Ошибка получения статистики", str(e))

    def _execute_update(self, certificate_id: str, values: dict) -> bool:
        """Выполняет одиночный UPDATE по id."""
        with self.db_manager.get_session() as session:
            try:
                result = session.execute(
                    update(CertificateRecord)
                    .where(CertificateRecord.id == certificate_id)
                    .values(**values)
                )
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise DatabaseError("Ошибка обновления сертификата", str(e))

        return result.rowcount > 0
