"""
Кастомные исключения для системы сертификатов.
"""


class CertificateError(Exception):
    """Базовое исключение для всех ошибок сертификатов."""

    def __init__(self, message: str, details: str = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(CertificateError, ValueError):
    """Ошибка валидации входных данных."""
    pass


class CertificateNotFoundError(CertificateError):
    """Сертификат не найден."""
    pass


class DocumentNotFoundError(CertificateNotFoundError):
    """У сертификата нет сгенерированного PDF документа."""
    pass


class CertificateExistsError(CertificateError):
    """Сертификат с таким номером уже существует."""
    pass


class ServiceNotConfiguredError(CertificateError):
    """Канал доставки не настроен (нет учетных данных провайдера)."""

    def __init__(self, channel: str, message: str = None):
        super().__init__(message or f"Канал доставки '{channel}' не настроен")
        self.channel = channel


class RenderError(CertificateError):
    """Ошибка генерации PDF документа."""
    pass


class DispatchError(CertificateError):
    """Провайдер отклонил или не смог доставить сообщение."""

    def __init__(self, channel: str, message: str, details: str = None):
        super().__init__(message, details)
        self.channel = channel


class DatabaseError(CertificateError):
    """Ошибка работы с базой данных."""
    pass


class StorageError(CertificateError):
    """Ошибка работы с файловым хранилищем."""
    pass
