"""
Основной модуль бизнес-логики сервиса сертификатов.
"""

from .service import CertificateService, create_certificate_service
from .models import Certificate, CertificateCreate, CertificateUpdate, DeliveryReceipt
from .generator import CertificatePDFGenerator
from .database import DatabaseManager, CertificateRepository
from .storage import DocumentStorage
from .dispatchers import EmailDispatcher, WhatsAppDispatcher

__version__ = "1.0.0"

__all__ = [
    'CertificateService',
    'create_certificate_service',
    'Certificate',
    'CertificateCreate',
    'CertificateUpdate',
    'DeliveryReceipt',
    'CertificatePDFGenerator',
    'DatabaseManager',
    'CertificateRepository',
    'DocumentStorage',
    'EmailDispatcher',
    'WhatsAppDispatcher',
]
