"""
Общие фикстуры для тестов
"""
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from certdesk.api import CertificateAPI
from certdesk.database import CertificateRepository, DatabaseManager
from certdesk.dispatchers import EmailDispatcher, WhatsAppDispatcher
from certdesk.generator import CertificatePDFGenerator
from certdesk.models import CHANNEL_EMAIL, CHANNEL_WHATSAPP, CertificateCreate
from certdesk.service import CertificateService
from certdesk.storage import DocumentStorage
from config.settings import Settings

FAKE_PDF = b"%PDF-1.4\n% test certificate\n%%EOF"
PUBLIC_BASE_URL = "http://certs.test"


@pytest.fixture
def settings(tmp_path):
    """Настройки с БД и файлами во временной директории"""
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'data' / 'certificates.db'}",
        certificates_path=tmp_path / "certificates",
        log_file=tmp_path / "logs" / "api.log",
        public_base_url=PUBLIC_BASE_URL,
        twilio_account_sid=None,
        twilio_auth_token=None,
        email_user=None,
        email_password=None,
    )


@pytest.fixture
def db_manager(tmp_path):
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'test.db'}")
    manager.create_tables()
    yield manager
    manager.dispose()


@pytest.fixture
def repository(db_manager):
    return CertificateRepository(db_manager)


@pytest.fixture
def storage(tmp_path):
    return DocumentStorage(tmp_path / "certificates")


@pytest.fixture
def generator(storage, monkeypatch):
    """Генератор без запуска браузера"""
    generator = CertificatePDFGenerator(storage, watermark="TEST")
    monkeypatch.setattr(generator, "_html_to_pdf", MagicMock(return_value=FAKE_PDF))
    return generator


@pytest.fixture
def twilio_client():
    """Мок клиента Twilio"""
    client = MagicMock()
    client.messages.create.return_value = MagicMock(sid="SM1234567890", status="queued")
    return client


@pytest.fixture
def smtp_session(monkeypatch):
    """Мок SMTP сессии, возвращается из `with smtplib.SMTP(...)`"""
    smtp_class = MagicMock()
    monkeypatch.setattr("smtplib.SMTP", smtp_class)
    return smtp_class.return_value.__enter__.return_value


@pytest.fixture
def whatsapp_dispatcher(twilio_client):
    return WhatsAppDispatcher("ACtest", "test-token", client=twilio_client)


@pytest.fixture
def email_dispatcher():
    return EmailDispatcher(
        "smtp.test", 587, "user@certs.test", "secret", sender="awards@certs.test"
    )


@pytest.fixture
def service(repository, storage, generator, whatsapp_dispatcher, email_dispatcher):
    """Сервис с настроенными каналами доставки"""
    return CertificateService(
        repository,
        storage,
        generator,
        {CHANNEL_WHATSAPP: whatsapp_dispatcher, CHANNEL_EMAIL: email_dispatcher},
        public_base_url=PUBLIC_BASE_URL,
        default_page_size=10,
        max_page_size=50,
    )


@pytest.fixture
def unconfigured_service(repository, storage, generator):
    """Сервис без учетных данных провайдеров"""
    return CertificateService(
        repository,
        storage,
        generator,
        {
            CHANNEL_WHATSAPP: WhatsAppDispatcher(None, None),
            CHANNEL_EMAIL: EmailDispatcher("smtp.test", 587, None, None),
        },
    )


@pytest.fixture
def certificate_request():
    return CertificateCreate(
        recipient_name="Asha Rao",
        certificate_number="CN-1001",
        award_rera_number="A51800012345",
        phone_number="9999999999",
        email="asha@example.com",
    )


@pytest.fixture
def client(service):
    """Тестовый клиент API"""
    return TestClient(CertificateAPI(service).app)


@pytest.fixture
def unconfigured_client(unconfigured_service):
    return TestClient(CertificateAPI(unconfigured_service).app)


@pytest.fixture
def fake_pdf():
    return FAKE_PDF
