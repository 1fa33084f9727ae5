"""
Модуль валидации контактных данных получателей.
"""

import re
from typing import Optional

from .exceptions import ValidationError


class PhoneNumberValidator:
    """Нормализация телефонных номеров в формат E.164."""

    def __init__(self, default_country_code: Optional[str] = None):
        # Пробелы, дефисы, скобки и точки в номере игнорируются
        self.separators = re.compile(r'[\s\-().]')
        self.pattern = re.compile(r'^\+[1-9]\d{7,14}$')
        self.default_country_code = default_country_code

    def normalize(self, phone_number: str) -> str:
        """
        Приводит номер к виду +<код страны><номер>.

        Args:
            phone_number: Номер телефона в произвольном формате

        Returns:
            str: Нормализованный номер

        Raises:
            ValidationError: Если номер некорректен
        """
        if not phone_number or not phone_number.strip():
            raise ValidationError("Номер телефона не может быть пустым")

        number = phone_number.strip()
        if number.lower().startswith("whatsapp:"):
            number = number[len("whatsapp:"):]

        number = self.separators.sub("", number)

        if number.startswith("00"):
            number = "+" + number[2:]

        if not number.startswith("+"):
            # Местный 10-значный номер без кода страны
            if self.default_country_code and len(number) == 10:
                number = self.default_country_code + number
            number = "+" + number

        if not self.pattern.match(number):
            raise ValidationError(f"Некорректный номер телефона: {phone_number}")

        return number


class EmailValidator:
    """Валидатор email адресов."""

    def __init__(self):
        self.pattern = re.compile(r'^[A-Za-z0-9._%+\-]+@[A-Za-z0-9\-]+(\.[A-Za-z0-9\-]+)+$')

    def normalize(self, email: str) -> str:
        """
        Валидация и нормализация email.

        Доменная часть приводится к нижнему регистру.

        Raises:
            ValidationError: Если адрес некорректен
        """
        if not email or not email.strip():
            raise ValidationError("Email не может быть пустым")

        address = email.strip()
        if len(address) > 254 or not self.pattern.match(address):
            raise ValidationError(f"Некорректный email: {email}")

        local, domain = address.rsplit("@", 1)
        return f"{local}@{domain.lower()}"


def normalize_phone_number(phone_number: str, default_country_code: Optional[str] = None) -> str:
    """Нормализует номер телефона."""
    return PhoneNumberValidator(default_country_code).normalize(phone_number)


def normalize_email(email: str) -> str:
    """Нормализует email адрес."""
    return EmailValidator().normalize(email)
