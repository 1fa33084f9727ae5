# config/settings.py - настройки сервиса выдачи сертификатов

"""
Настройки приложения, загружаемые из переменных окружения.
"""

import os
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Значения-заглушки из .env.example не считаются настроенными учетными данными
PLACEHOLDER_VALUES = {
    "your_twilio_account_sid",
    "your_twilio_auth_token",
    "your_email@gmail.com",
    "your_app_password",
}


class Settings(BaseSettings):
    """Настройки приложения."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Игнорировать дополнительные поля из .env
    )

    # Настройки базы данных
    database_url: str = Field(
        default="sqlite:///./data/certificates.db",
        description="URL подключения к базе данных (SQLAlchemy)"
    )

    # Настройки хранилища
    certificates_path: Path = Field(
        default=Path("./public/certificates"),
        description="Директория для PDF сертификатов"
    )
    public_base_url: Optional[str] = Field(
        default=None,
        description="Публичный адрес сервиса для ссылок на PDF"
    )

    # Настройки API
    api_key: Optional[str] = Field(default=None, description="Bearer токен для доступа к API")
    cors_origins: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        description="Разрешенные источники CORS через запятую"
    )
    default_page_size: int = Field(default=100, ge=1, description="Размер страницы по умолчанию")
    max_page_size: int = Field(default=500, ge=1, description="Максимальный размер страницы")

    # Настройки логирования
    log_level: str = Field(default="INFO", description="Уровень логирования")
    log_file: Path = Field(default=Path("./logs/api.log"), description="Путь к файлу логов")

    # Настройки приложения
    debug: bool = Field(default=False, description="Режим отладки")

    # Оформление сертификата
    company_name: str = Field(default="Top Selling Property", description="Название компании")
    company_website: str = Field(default="www.topsellingproperty.com", description="Сайт компании")
    certificate_watermark: str = Field(
        default="PRINTUKVAREBA/12578904/25082030/006037",
        description="Служебная строка в нижнем углу сертификата"
    )
    render_timeout_ms: int = Field(default=60_000, ge=1000, description="Таймаут рендеринга PDF")

    # WhatsApp (Twilio)
    twilio_account_sid: Optional[str] = Field(default=None, description="Twilio Account SID")
    twilio_auth_token: Optional[str] = Field(default=None, description="Twilio Auth Token")
    twilio_whatsapp_number: str = Field(
        default="whatsapp:+14155238886",
        description="Номер отправителя WhatsApp"
    )
    whatsapp_attach_document: bool = Field(
        default=False,
        description="Прикладывать PDF как медиа (требует одобренного аккаунта Twilio)"
    )
    phone_default_country_code: Optional[str] = Field(
        default=None,
        description="Код страны для 10-значных номеров, например 91"
    )

    # Email (SMTP)
    smtp_host: str = Field(default="smtp.gmail.com", description="SMTP сервер")
    smtp_port: int = Field(default=587, description="SMTP порт")
    smtp_use_tls: bool = Field(default=True, description="STARTTLS после подключения")
    smtp_use_ssl: bool = Field(default=False, description="SMTP поверх SSL (порт 465)")
    smtp_timeout: int = Field(default=30, ge=1, description="Таймаут SMTP в секундах")
    email_user: Optional[str] = Field(default=None, description="Логин SMTP")
    email_password: Optional[str] = Field(default=None, description="Пароль SMTP")
    email_from: Optional[str] = Field(default=None, description="Адрес отправителя")
    email_from_name: str = Field(default="Top Selling Properties", description="Имя отправителя")

    @property
    def cors_origins_list(self) -> List[str]:
        """Возвращает список источников CORS."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def sender_email(self) -> Optional[str]:
        """Адрес отправителя писем (по умолчанию совпадает с логином)."""
        return self.email_from or self.email_user

    @field_validator("twilio_account_sid", "twilio_auth_token", "email_user", "email_password")
    @classmethod
    def drop_placeholders(cls, v):
        """Значения-заглушки приравниваются к отсутствующим."""
        if v is None:
            return None
        v = v.strip()
        if not v or v in PLACEHOLDER_VALUES:
            return None
        return v

    @field_validator("public_base_url")
    @classmethod
    def validate_public_base_url(cls, v):
        """Убирает завершающий слэш из публичного адреса."""
        if v:
            return v.rstrip("/")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Валидация уровня логирования."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Некорректный уровень логирования: {v}")
        return level

    @field_validator("phone_default_country_code")
    @classmethod
    def validate_country_code(cls, v):
        """Код страны задается только цифрами, без '+'."""
        if v is None:
            return None
        v = v.strip().lstrip("+")
        if not v:
            return None
        if not v.isdigit() or len(v) > 3:
            raise ValueError(f"Некорректный код страны: {v}")
        return v

    def create_directories(self):
        """Создает необходимые директории."""
        self.certificates_path.mkdir(parents=True, exist_ok=True)
        self.log_file.parent.mkdir(parents=True, exist_ok=True)

        # Директория для файла SQLite
        if self.database_url.startswith("sqlite:///") and ":memory:" not in self.database_url:
            db_file = Path(self.database_url[len("sqlite:///"):])
            db_file.parent.mkdir(parents=True, exist_ok=True)

        if not os.access(self.certificates_path, os.W_OK):
            raise PermissionError(f"Нет прав записи в {self.certificates_path}")


# Глобальный объект настроек, создается при первом обращении
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Возвращает объект настроек."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def load_settings_from_file(env_file: str = ".env") -> Settings:
    """
    Загружает настройки из указанного файла.

    Args:
        env_file: Путь к файлу с переменными окружения

    Returns:
        Settings: Объект настроек
    """
    return Settings(_env_file=env_file)


def create_env_example(path: str = ".env.example"):
    """Создает пример файла .env."""
    env_example_content = """# База данных
DATABASE_URL=sqlite:///./data/certificates.db

# Хранилище PDF
CERTIFICATES_PATH=./public/certificates
PUBLIC_BASE_URL=http://localhost:8000

# API
API_KEY=
CORS_ORIGINS=http://localhost:5173,http://localhost:3000

# Логирование
LOG_LEVEL=INFO
LOG_FILE=./logs/api.log

# WhatsApp (Twilio)
TWILIO_ACCOUNT_SID=your_twilio_account_sid
TWILIO_AUTH_TOKEN=your_twilio_auth_token
TWILIO_WHATSAPP_NUMBER=whatsapp:+14155238886
PHONE_DEFAULT_COUNTRY_CODE=91

# Email (SMTP)
SMTP_HOST=smtp.gmail.com
SMTP_PORT=587
EMAIL_USER=your_email@gmail.com
EMAIL_PASSWORD=your_app_password
EMAIL_FROM=
"""

    with open(path, "w", encoding="utf-8") as f:
        f.write(env_example_content)

    print(f"Создан файл {path} с примером конфигурации")


if __name__ == "__main__":
    create_env_example()
