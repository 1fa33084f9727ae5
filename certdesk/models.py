# certdesk/models.py - модели запросов и ответов

"""
Pydantic модели для валидации и сериализации данных сертификатов.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

# Каналы доставки
CHANNEL_WHATSAPP = "whatsapp"
CHANNEL_EMAIL = "email"
CHANNELS = (CHANNEL_WHATSAPP, CHANNEL_EMAIL)

# Поля, которые разрешено менять через частичное обновление
EDITABLE_FIELDS = (
    "recipient_name",
    "certificate_number",
    "award_rera_number",
    "description",
    "phone_number",
    "email",
)


def _strip_optional(v):
    """Пустые строки в необязательных полях считаются отсутствующими."""
    if v is None:
        return None
    v = str(v).strip()
    return v or None


class CertificateCreate(BaseModel):
    """Модель запроса на создание сертификата."""
    recipient_name: str = Field(..., max_length=255, description="Имя получателя")
    certificate_number: str = Field(..., max_length=100, description="Номер сертификата")
    award_rera_number: Optional[str] = Field(None, max_length=100, description="RERA номер награжденного")
    description: Optional[str] = Field(None, description="Текст сертификата")
    phone_number: Optional[str] = Field(None, max_length=32, description="Телефон получателя")
    email: Optional[str] = Field(None, max_length=255, description="Email получателя")

    @field_validator("recipient_name", "certificate_number")
    @classmethod
    def validate_required(cls, v):
        """Обязательные поля не могут быть пустыми."""
        v = v.strip()
        if not v:
            raise ValueError("Поле не может быть пустым")
        return v

    @field_validator("award_rera_number", "description", "phone_number", "email")
    @classmethod
    def validate_optional(cls, v):
        return _strip_optional(v)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "recipient_name": "Asha Rao",
                "certificate_number": "CN-1001",
                "award_rera_number": "A51800012345",
                "phone_number": "9999999999",
                "email": "asha@example.com",
            }
        }
    )


class CertificateUpdate(BaseModel):
    """Модель частичного обновления сертификата."""
    recipient_name: Optional[str] = Field(None, max_length=255)
    certificate_number: Optional[str] = Field(None, max_length=100)
    award_rera_number: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    phone_number: Optional[str] = Field(None, max_length=32)
    email: Optional[str] = Field(None, max_length=255)

    # id, даты и флаги доставки в теле запроса молча игнорируются
    model_config = ConfigDict(extra="ignore")

    @field_validator("recipient_name", "certificate_number")
    @classmethod
    def validate_required(cls, v):
        """Обязательные поля нельзя обнулить."""
        if v is None:
            raise ValueError("Поле не может быть пустым")
        v = v.strip()
        if not v:
            raise ValueError("Поле не может быть пустым")
        return v

    @field_validator("award_rera_number", "description", "phone_number", "email")
    @classmethod
    def validate_optional(cls, v):
        return _strip_optional(v)

    def changes(self) -> dict:
        """Возвращает только явно переданные поля."""
        data = self.model_dump(exclude_unset=True)
        return {key: value for key, value in data.items() if key in EDITABLE_FIELDS}


class Certificate(BaseModel):
    """Модель сертификата."""
    id: str
    recipient_name: str
    certificate_number: str
    award_rera_number: Optional[str] = None
    description: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    issued_year: Optional[int] = None
    document_path: Optional[str] = None
    whatsapp_sent: bool = False
    whatsapp_sent_at: Optional[datetime] = None
    email_sent: bool = False
    email_sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def delivery_sent(self) -> bool:
        """Отправлен ли сертификат хотя бы по одному каналу."""
        return self.whatsapp_sent or self.email_sent

    @computed_field
    @property
    def delivery_sent_at(self) -> Optional[datetime]:
        """Время последней успешной отправки."""
        sent_at = [
            timestamp for sent, timestamp in (
                (self.whatsapp_sent, self.whatsapp_sent_at),
                (self.email_sent, self.email_sent_at),
            )
            if sent and timestamp is not None
        ]
        return max(sent_at) if sent_at else None

    @computed_field
    @property
    def delivered_via(self) -> Dict[str, bool]:
        """Статус доставки по каждому каналу."""
        return {
            CHANNEL_WHATSAPP: self.whatsapp_sent,
            CHANNEL_EMAIL: self.email_sent,
        }

    @computed_field
    @property
    def document_url(self) -> Optional[str]:
        """Публичный путь к PDF."""
        if not self.document_path:
            return None
        return f"/certificates/{self.id}.pdf"

    @property
    def download_filename(self) -> str:
        """Имя файла при скачивании."""
        return f"certificate_{self.certificate_number}.pdf"

    def contact_for(self, channel: str) -> Optional[str]:
        """Контакт получателя для канала доставки."""
        if channel == CHANNEL_WHATSAPP:
            return self.phone_number
        if channel == CHANNEL_EMAIL:
            return self.email
        return None


class Pagination(BaseModel):
    """Параметры страницы списка."""
    total: int
    limit: int
    offset: int
    hasMore: bool


class CertificatePage(BaseModel):
    """Страница списка сертификатов."""
    data: List[Certificate]
    pagination: Pagination


class CertificateStats(BaseModel):
    """Сводная статистика."""
    total: int
    delivered: int
    pending: int
    whatsapp_sent: int = 0
    email_sent: int = 0


class SendRequest(BaseModel):
    """Тело запроса отправки сертификата."""
    phone_number: Optional[str] = None
    email: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("phone_number", "email")
    @classmethod
    def validate_optional(cls, v):
        return _strip_optional(v)


class DeliveryReceipt(BaseModel):
    """Квитанция об отправке от провайдера."""
    success: bool = True
    channel: str
    provider_message_id: Optional[str] = Field(None, serialization_alias="providerMessageId")
    status: Optional[str] = None
    destination: str


class DeleteResponse(BaseModel):
    """Ответ на удаление."""
    success: bool
    message: str
