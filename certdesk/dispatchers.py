"""
Отправка сертификатов получателям: WhatsApp (Twilio) и email (SMTP).

Оба отправщика получают учетные данные через конструктор и до любого
сетевого вызова проверяют, что канал настроен.
"""

import logging
import smtplib
from abc import ABC, abstractmethod
from datetime import date
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from pathlib import Path
from typing import Optional

from markupsafe import escape as html_escape
from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.rest import Client as TwilioClient

from .exceptions import DispatchError, ServiceNotConfiguredError
from .models import CHANNEL_EMAIL, CHANNEL_WHATSAPP, Certificate, DeliveryReceipt
from .validators import EmailValidator, PhoneNumberValidator

logger = logging.getLogger(__name__)


class NotificationDispatcher(ABC):
    """Базовый класс канала доставки."""

    channel: str = ""

    @abstractmethod
    def is_configured(self) -> bool:
        """Есть ли учетные данные провайдера."""

    @abstractmethod
    def normalize_destination(self, destination: str) -> str:
        """Приводит адрес получателя к формату провайдера."""

    @abstractmethod
    def dispatch(self, destination: str, certificate: Certificate,
                 document_path: Optional[Path], document_url: Optional[str]) -> DeliveryReceipt:
        """
        Отправляет сертификат получателю одним вызовом API провайдера.

        Raises:
            ServiceNotConfiguredError: Канал не настроен
            ValidationError: Некорректный адрес получателя
            DispatchError: Провайдер вернул ошибку
        """

    def ensure_configured(self):
        """Проверка настройки канала до обращения к сети."""
        if not self.is_configured():
            raise ServiceNotConfiguredError(self.channel)


class WhatsAppDispatcher(NotificationDispatcher):
    """Отправка сертификатов через WhatsApp (Twilio)."""

    channel = CHANNEL_WHATSAPP

    def __init__(self, account_sid: Optional[str], auth_token: Optional[str],
                 from_number: str = "whatsapp:+14155238886",
                 attach_document: bool = False,
                 default_country_code: Optional[str] = None,
                 company_name: str = "Top Selling Property",
                 company_website: str = "www.topsellingproperty.com",
                 client: Optional[TwilioClient] = None):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number if from_number.startswith("whatsapp:") else f"whatsapp:{from_number}"
        self.attach_document = attach_document
        self.company_name = company_name
        self.company_website = company_website
        self.phone_validator = PhoneNumberValidator(default_country_code)

        self.client = client
        if self.client is None and self.is_configured():
            self.client = TwilioClient(account_sid, auth_token)
            logger.info("Twilio WhatsApp клиент инициализирован")
        elif self.client is None:
            logger.warning("Учетные данные Twilio не настроены, отправка в WhatsApp отключена")

    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token)

    def normalize_destination(self, destination: str) -> str:
        return self.phone_validator.normalize(destination)

    def format_message(self, certificate: Certificate, document_url: Optional[str]) -> str:
        """Текст сообщения для получателя."""
        lines = [
            f"🎉 *Congratulations {certificate.recipient_name}!*",
            "",
            f"You have been awarded a Certificate of Appreciation from *{self.company_name}*.",
            "",
            f"📜 *Certificate Number:* {certificate.certificate_number}",
        ]
        if certificate.award_rera_number:
            lines.append(f"🏆 *Award RERA Number:* {certificate.award_rera_number}")

        lines.append("")
        if document_url:
            lines.extend(["📥 *Download your certificate:*", document_url])
        else:
            lines.append("Your certificate is attached to this message.")

        lines.extend([
            "",
            "Thank you for your commitment and excellence!",
            "",
            f"*{self.company_website}*",
        ])
        return "\n".join(lines)

    def dispatch(self, destination: str, certificate: Certificate,
                 document_path: Optional[Path], document_url: Optional[str]) -> DeliveryReceipt:
        self.ensure_configured()
        recipient = self.normalize_destination(destination)

        params = {
            "body": self.format_message(certificate, document_url),
            "from_": self.from_number,
            "to": f"whatsapp:{recipient}",
        }
        if self.attach_document and document_url:
            params["media_url"] = [document_url]

        try:
            message = self.client.messages.create(**params)
        except TwilioRestException as e:
            logger.error(f"Twilio отклонил сообщение для {recipient}: {e.msg}")
            raise DispatchError(self.channel, "Не удалось отправить сертификат в WhatsApp",
                                f"{e.code}: {e.msg}")
        except TwilioException as e:
            logger.error(f"Ошибка Twilio при отправке на {recipient}: {e}")
            raise DispatchError(self.channel, "Не удалось отправить сертификат в WhatsApp", str(e))

        logger.info(f"WhatsApp сообщение отправлено на {recipient}. SID: {message.sid}")

        return DeliveryReceipt(
            success=True,
            channel=self.channel,
            provider_message_id=message.sid,
            status=message.status,
            destination=recipient,
        )


class EmailDispatcher(NotificationDispatcher):
    """Отправка сертификатов по email (SMTP) с PDF во вложении."""

    channel = CHANNEL_EMAIL

    def __init__(self, host: str, port: int,
                 username: Optional[str], password: Optional[str],
                 sender: Optional[str] = None,
                 sender_name: str = "Top Selling Properties",
                 use_tls: bool = True,
                 use_ssl: bool = False,
                 timeout: int = 30,
                 company_name: str = "Top Selling Properties",
                 company_website: str = "www.topsellingproperty.com"):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username
        self.sender_name = sender_name
        self.use_tls = use_tls
        self.use_ssl = use_ssl
        self.timeout = timeout
        self.company_name = company_name
        self.company_website = company_website
        self.email_validator = EmailValidator()

        if not self.is_configured():
            logger.warning("Учетные данные SMTP не настроены, отправка email отключена")

    def is_configured(self) -> bool:
        return bool(self.host and self.username and self.password and self.sender)

    def normalize_destination(self, destination: str) -> str:
        return self.email_validator.normalize(destination)

    def build_message(self, recipient: str, certificate: Certificate, document: bytes) -> EmailMessage:
        """Формирует письмо с HTML телом и PDF во вложении."""
        issued = date.today().strftime("%B %d, %Y").replace(" 0", " ")

        message = EmailMessage()
        message["Subject"] = f"🎓 Certificate of Appreciation - {certificate.certificate_number}"
        message["From"] = formataddr((self.sender_name, self.sender))
        message["To"] = recipient
        message["Message-ID"] = make_msgid(domain=self.sender.rsplit("@", 1)[-1])

        plain = [
            f"Congratulations {certificate.recipient_name}!",
            "",
            f"We are pleased to present you with a Certificate of Appreciation from {self.company_name}.",
            "",
            f"Certificate Number: {certificate.certificate_number}",
        ]
        if certificate.award_rera_number:
            plain.append(f"Award RERA Number: {certificate.award_rera_number}")
        plain.extend([
            f"Issued Date: {issued}",
            "",
            "Your certificate is attached to this email as a PDF document.",
            "",
            self.company_website,
        ])
        message.set_content("\n".join(plain))
        message.add_alternative(self._html_body(certificate, issued), subtype="html")

        message.add_attachment(
            document,
            maintype="application",
            subtype="pdf",
            filename=f"Certificate_{certificate.certificate_number}.pdf",
        )
        return message

    def _html_body(self, certificate: Certificate, issued: str) -> str:
        award = ""
        if certificate.award_rera_number:
            award = f"<p><strong>Award RERA Number:</strong> {html_escape(certificate.award_rera_number)}</p>"

        return f"""<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="background: #d32f2f; color: white; padding: 30px; text-align: center; border-radius: 10px 10px 0 0;">
    <h1>🎓 Certificate of Appreciation</h1>
    <p>{html_escape(self.company_name)}</p>
  </div>
  <div style="background: #f5f5f5; padding: 30px; border-radius: 0 0 10px 10px;">
    <h2>Congratulations {html_escape(certificate.recipient_name)}!</h2>
    <p>We are pleased to present you with a <strong>Certificate of Appreciation</strong>
       from <strong>{html_escape(self.company_name)}</strong>.</p>
    <div style="background: white; padding: 15px; border-radius: 5px; margin: 20px 0;">
      <p><strong>Certificate Number:</strong> {html_escape(certificate.certificate_number)}</p>
      {award}
      <p><strong>Issued Date:</strong> {issued}</p>
    </div>
    <p>This certificate recognizes your commitment, hard work, and professionalism in achieving
       exceptional results in the real estate industry.</p>
    <p>Your certificate is attached to this email as a PDF document. You can download, print,
       or share it as needed.</p>
    <p style="margin-top: 30px;"><strong>Thank you for your excellence!</strong></p>
  </div>
  <div style="text-align: center; margin-top: 30px; padding-top: 20px; border-top: 1px solid #ddd; color: #666; font-size: 12px;">
    <p><strong>{html_escape(self.company_name)}</strong></p>
    <p>{html_escape(self.company_website)}</p>
  </div>
</body>
</html>"""

    def dispatch(self, destination: str, certificate: Certificate,
                 document_path: Optional[Path], document_url: Optional[str]) -> DeliveryReceipt:
        self.ensure_configured()
        recipient = self.normalize_destination(destination)

        if not document_path or not Path(document_path).is_file():
            raise DispatchError(self.channel, "PDF файл сертификата не найден", str(document_path))

        try:
            message = self.build_message(recipient, certificate, Path(document_path).read_bytes())
            self._send(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Ошибка отправки email на {recipient}: {e}")
            raise DispatchError(self.channel, "Не удалось отправить сертификат по email", str(e))

        logger.info(f"Email отправлен на {recipient}. Message ID: {message['Message-ID']}")

        return DeliveryReceipt(
            success=True,
            channel=self.channel,
            provider_message_id=message["Message-ID"],
            status="sent",
            destination=recipient,
        )

    def _send(self, message: EmailMessage):
        """Одна SMTP сессия на письмо."""
        smtp_class = smtplib.SMTP_SSL if self.use_ssl else smtplib.SMTP
        with smtp_class(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls and not self.use_ssl:
                smtp.starttls()
            smtp.login(self.username, self.password)
            smtp.send_message(message)
