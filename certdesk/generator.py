"""
Генератор PDF сертификатов.

HTML шаблон сертификата рендерится в PDF через headless Chromium
(Playwright) и сохраняется в файловое хранилище под именем <id>.pdf.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Optional

from markupsafe import escape as html_escape
from playwright.sync_api import Error as PlaywrightError, sync_playwright

from .exceptions import RenderError, StorageError
from .models import Certificate
from .storage import DocumentStorage

logger = logging.getLogger(__name__)

# Размер страницы сертификата
PAGE_WIDTH = "1024px"
PAGE_HEIGHT = "720px"

DEFAULT_DESCRIPTION = (
    "This Certificate was given for your commitment, hard work, and professionalism "
    "have set a remarkable standard of excellence for excellence in property marketing, "
    "client handling, and achieving exceptional results in real estate platform. "
    "<strong>{website}</strong> for your real estate needs, Our priority – Always ready to help you."
)

CERTIFICATE_CSS = """
    * { margin: 0; padding: 0; box-sizing: border-box; }
    @page { size: 1024px 720px; margin: 0; }
    body { width: 1024px; height: 720px; font-family: 'Arial', sans-serif; position: relative; overflow: hidden; }
    * { -webkit-print-color-adjust: exact; print-color-adjust: exact; }
    .certificate { width: 100%; height: 100%; position: relative;
      background: linear-gradient(to bottom, #f5f5f5 0%, #ffffff 50%, #f5f5f5 100%); }
    .wave-top { position: absolute; top: 0; left: 0; width: 100%; height: 180px; background: #d32f2f;
      clip-path: ellipse(150% 100% at 50% 0%); z-index: 1; }
    .wave-bottom { position: absolute; bottom: 0; left: 0; width: 100%; height: 150px;
      background: linear-gradient(135deg, #d32f2f 0%, #c62828 100%);
      clip-path: ellipse(150% 100% at 50% 100%); z-index: 1; }
    .logo { position: absolute; top: 40px; right: 50px; width: 100px; height: 100px; background: white;
      border-radius: 15px; display: flex; align-items: center; justify-content: center;
      box-shadow: 0 4px 6px rgba(0,0,0,0.1); z-index: 2; font-weight: bold; color: #d32f2f;
      font-size: 12px; text-align: center; padding: 10px; border: 3px solid #d32f2f; }
    .badge { position: absolute; top: 140px; right: 100px; width: 90px; height: 90px;
      background: linear-gradient(135deg, #ffd700 0%, #ffed4e 50%, #ffd700 100%); border-radius: 50%;
      display: flex; flex-direction: column; align-items: center; justify-content: center;
      box-shadow: 0 4px 12px rgba(0,0,0,0.2); z-index: 2; border: 4px solid #fff; }
    .badge-year { font-size: 28px; font-weight: bold; color: #333; }
    .badge-ribbon { position: absolute; bottom: -15px; width: 40px; height: 30px; background: #d32f2f;
      clip-path: polygon(0 0, 100% 0, 100% 70%, 50% 100%, 0 70%); }
    .content { position: relative; z-index: 2; text-align: center; padding: 160px 80px 80px; }
    .title { font-size: 72px; font-weight: bold; color: #1a1a1a; letter-spacing: 4px; margin-bottom: 10px; }
    .subtitle { font-size: 32px; color: #555; font-weight: 500; letter-spacing: 2px; margin-bottom: 40px; }
    .awarded-to { font-size: 20px; color: #666; margin-bottom: 15px; letter-spacing: 1px; }
    .recipient-name { font-size: 56px; font-weight: bold; color: #d32f2f; font-style: italic;
      margin-bottom: 30px; text-decoration: underline; text-decoration-color: #1a1a1a;
      text-decoration-thickness: 2px; text-underline-offset: 8px; }
    .description { font-size: 16px; color: #444; line-height: 1.6; max-width: 800px;
      margin: 0 auto 40px; padding: 0 20px; }
    .certificate-details { display: flex; justify-content: space-around; max-width: 800px; margin: 0 auto 40px; }
    .detail-box { text-align: center; }
    .detail-label { font-size: 14px; font-weight: bold; color: #1a1a1a; margin-bottom: 8px; letter-spacing: 1px; }
    .detail-value { font-size: 13px; color: #555; font-weight: 600; }
    .signatures { display: flex; justify-content: space-around; max-width: 600px; margin: 0 auto; }
    .signature { text-align: center; }
    .signature-line { width: 200px; height: 60px; border-bottom: 2px solid #1a1a1a; margin-bottom: 8px;
      display: flex; align-items: flex-end; justify-content: center; font-family: 'Brush Script MT', cursive;
      font-size: 28px; color: #1a5a8a; padding-bottom: 5px; }
    .signature-title { font-size: 16px; font-weight: bold; color: #1a1a1a; }
    .watermark { position: absolute; bottom: 20px; left: 50px; font-size: 10px; color: #999;
      writing-mode: vertical-rl; text-orientation: mixed; z-index: 2; letter-spacing: 1px; }
"""


class CertificatePDFGenerator:
    """Генератор PDF документов сертификатов."""

    def __init__(self, storage: DocumentStorage,
                 company_name: str = "Top Selling Property",
                 company_website: str = "www.topsellingproperty.com",
                 watermark: str = "",
                 timeout_ms: int = 60_000):
        self.storage = storage
        self.company_name = company_name
        self.company_website = company_website
        self.watermark = watermark
        self.timeout_ms = timeout_ms

    def build_html(self, certificate: Certificate, year: Optional[int] = None) -> str:
        """
        Формирует HTML сертификата.

        Args:
            certificate: Данные сертификата
            year: Год на значке; по умолчанию год выдачи или текущий год

        Returns:
            str: Полный HTML документ
        """
        if year is None:
            year = certificate.issued_year or date.today().year

        if certificate.description:
            description = str(html_escape(certificate.description))
        else:
            description = DEFAULT_DESCRIPTION.format(website=html_escape(self.company_website))

        award_block = ""
        if certificate.award_rera_number:
            award_block = f"""
        <div class="detail-box">
          <div class="detail-label">AWARDEE RERA NUMBER</div>
          <div class="detail-value">{html_escape(certificate.award_rera_number)}</div>
        </div>"""

        logo_text = "<br>".join(
            str(html_escape(word)) for word in self.company_name.upper().split(" ", 1)
        )

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <title>Certificate {html_escape(certificate.certificate_number)}</title>
  <style>{CERTIFICATE_CSS}</style>
</head>
<body>
  <div class="certificate">
    <div class="wave-top"></div>
    <div class="wave-bottom"></div>

    <div class="logo">{logo_text}</div>

    <div class="badge">
      <div class="badge-year">{year}</div>
      <div class="badge-ribbon"></div>
    </div>

    <div class="content">
      <div class="title">CERTIFICATE</div>
      <div class="subtitle">FOR APPRECIATION</div>

      <div class="awarded-to">IS AWARDED TO:</div>

      <div class="recipient-name">{html_escape(certificate.recipient_name)}</div>

      <div class="description">{description}</div>

      <div class="certificate-details">
        <div class="detail-box">
          <div class="detail-label">CERTIFICATE NUMBER</div>
          <div class="detail-value">{html_escape(certificate.certificate_number)}</div>
        </div>{award_block}
      </div>

      <div class="signatures">
        <div class="signature">
          <div class="signature-line">Signature</div>
          <div class="signature-title">Director</div>
        </div>
        <div class="signature">
          <div class="signature-line">Signature</div>
          <div class="signature-title">Founder</div>
        </div>
      </div>
    </div>

    <div class="watermark">{html_escape(self.watermark)}</div>
  </div>
</body>
</html>"""

    def render(self, certificate: Certificate) -> Path:
        """
        Генерирует PDF сертификата и сохраняет его в хранилище.

        Args:
            certificate: Данные сертификата (id уже назначен)

        Returns:
            Path: Путь к файлу <id>.pdf

        Raises:
            RenderError: Если браузер не запустился или файл не записан
        """
        html = self.build_html(certificate)

        try:
            pdf_bytes = self._html_to_pdf(html)
        except PlaywrightError as e:
            logger.error(f"Ошибка рендеринга сертификата {certificate.id}: {e}")
            raise RenderError("Не удалось сгенерировать PDF сертификата", str(e))

        try:
            path = self.storage.save_document(certificate.id, pdf_bytes)
        except StorageError as e:
            logger.error(f"Ошибка записи PDF сертификата {certificate.id}: {e.details}")
            raise RenderError("Не удалось сохранить PDF сертификата", e.details)

        logger.info(f"PDF сертификата сгенерирован: {path}")
        return path

    def _html_to_pdf(self, html: str) -> bytes:
        """Рендерит HTML в PDF в headless Chromium."""
        with sync_playwright() as p:
            browser = p.chromium.launch(
                args=[
                    "--no-sandbox",
                    "--disable-setuid-sandbox",
                    "--disable-dev-shm-usage",
                ]
            )
            try:
                page = browser.new_page()
                page.set_content(html, wait_until="load", timeout=self.timeout_ms)

                return page.pdf(
                    width=PAGE_WIDTH,
                    height=PAGE_HEIGHT,
                    print_background=True,
                    prefer_css_page_size=True,
                )
            finally:
                browser.close()
