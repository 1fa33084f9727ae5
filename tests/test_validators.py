"""
Тесты для модуля валидации
"""
import pytest

from certdesk.exceptions import ValidationError
from certdesk.validators import (
    EmailValidator, PhoneNumberValidator, normalize_email, normalize_phone_number
)


class TestPhoneNumberValidator:
    """Тесты нормализации телефонных номеров"""

    def test_normalize_local_number_without_country_code(self):
        """10-значный номер без кода страны получает только '+'"""
        assert PhoneNumberValidator().normalize("9999999999") == "+9999999999"

    def test_normalize_with_default_country_code(self):
        validator = PhoneNumberValidator("91")
        assert validator.normalize("9999999999") == "+919999999999"
        # Номер с кодом страны не меняется
        assert validator.normalize("+14155550100") == "+14155550100"

    def test_normalize_strips_separators_and_prefixes(self):
        validator = PhoneNumberValidator()
        valid_numbers = {
            "+1 (415) 555-0100": "+14155550100",
            "whatsapp:+14155550100": "+14155550100",
            "0044 20 7946 0958": "+442079460958",
            " 971.50.123.4567 ": "+971501234567",
        }

        for raw, expected in valid_numbers.items():
            assert validator.normalize(raw) == expected

    def test_normalize_invalid(self):
        validator = PhoneNumberValidator()
        invalid_numbers = [
            "",
            "   ",
            "abc",
            "+0123456789",
            "12345",
            "+1234567890123456",
        ]

        for number in invalid_numbers:
            with pytest.raises(ValidationError):
                validator.normalize(number)

    def test_helper(self):
        assert normalize_phone_number("(999) 999-9999", "1") == "+19999999999"


class TestEmailValidator:
    """Тесты валидации email"""

    def test_normalize_valid(self):
        validator = EmailValidator()
        assert validator.normalize("asha@example.com") == "asha@example.com"
        assert validator.normalize("  Asha.Rao@Example.COM ") == "Asha.Rao@example.com"
        assert validator.normalize("first+tag@mail.example.co.in") == "first+tag@mail.example.co.in"

    def test_normalize_invalid(self):
        validator = EmailValidator()
        invalid_emails = [
            "",
            "plainaddress",
            "@example.com",
            "asha@",
            "asha@example",
            "asha rao@example.com",
            "a" * 250 + "@example.com",
        ]

        for email in invalid_emails:
            with pytest.raises(ValidationError):
                validator.normalize(email)

    def test_helper(self):
        assert normalize_email("user@EXAMPLE.org") == "user@example.org"
