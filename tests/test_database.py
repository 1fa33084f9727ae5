"""
Тесты для репозитория сертификатов
"""
import uuid
from datetime import datetime, timedelta

import pytest

from certdesk.exceptions import CertificateExistsError, ValidationError


def make_data(number="CN-1001", **overrides):
    data = {
        "id": str(uuid.uuid4()),
        "recipient_name": "Asha Rao",
        "certificate_number": number,
        "issued_year": 2024,
        "document_path": f"/tmp/{number}.pdf",
    }
    data.update(overrides)
    return data


class TestCertificateRepository:
    """Тесты для CertificateRepository"""

    def test_create_and_get(self, repository):
        record = repository.create_certificate(make_data(phone_number="9999999999"))

        assert record.created_at is not None
        assert record.updated_at is not None
        assert record.whatsapp_sent is False
        assert record.email_sent is False
        assert record.whatsapp_sent_at is None

        loaded = repository.get_certificate_by_id(record.id)
        assert loaded.certificate_number == "CN-1001"
        assert loaded.phone_number == "9999999999"

        by_number = repository.get_certificate_by_number("CN-1001")
        assert by_number.id == record.id

    def test_get_missing(self, repository):
        assert repository.get_certificate_by_id(str(uuid.uuid4())) is None
        assert repository.get_certificate_by_number("NOPE") is None

    def test_duplicate_number(self, repository):
        repository.create_certificate(make_data())

        with pytest.raises(CertificateExistsError):
            repository.create_certificate(make_data())

        assert repository.count_all() == 1

    def test_list_newest_first(self, repository):
        now = datetime.now()
        older = repository.create_certificate(make_data("CN-1", created_at=now - timedelta(minutes=5)))
        newer = repository.create_certificate(make_data("CN-2", created_at=now))

        records = repository.list_certificates(limit=10, offset=0)
        assert [r.id for r in records] == [newer.id, older.id]

        page = repository.list_certificates(limit=1, offset=1)
        assert [r.id for r in page] == [older.id]

    def test_list_same_created_at_ordered_by_id(self, repository):
        created_at = datetime(2024, 1, 15, 12, 0, 0)
        ids = [str(uuid.uuid4()) for _ in range(3)]
        for i, certificate_id in enumerate(ids):
            repository.create_certificate(make_data(f"CN-{i}", id=certificate_id, created_at=created_at))

        records = repository.list_certificates(limit=10, offset=0)
        assert [r.id for r in records] == sorted(ids, reverse=True)

        pages = [repository.list_certificates(limit=1, offset=i)[0].id for i in range(3)]
        assert pages == sorted(ids, reverse=True)

    def test_update_only_editable_fields(self, repository):
        record = repository.create_certificate(make_data())

        updated = repository.update_certificate(record.id, {
            "recipient_name": "Asha R.",
            "email": "asha@example.com",
            "whatsapp_sent": True,
            "id": "other",
            "document_path": "/elsewhere.pdf",
        })

        assert updated.id == record.id
        assert updated.recipient_name == "Asha R."
        assert updated.email == "asha@example.com"
        assert updated.whatsapp_sent is False
        assert updated.document_path == record.document_path
        assert updated.updated_at >= record.updated_at

    def test_update_missing(self, repository):
        assert repository.update_certificate(str(uuid.uuid4()), {"recipient_name": "X"}) is None

    def test_update_number_conflict(self, repository):
        repository.create_certificate(make_data("CN-1"))
        second = repository.create_certificate(make_data("CN-2"))

        with pytest.raises(CertificateExistsError):
            repository.update_certificate(second.id, {"certificate_number": "CN-1"})

    def test_mark_delivered_sets_timestamp(self, repository):
        record = repository.create_certificate(make_data())

        assert repository.mark_delivered(record.id, "whatsapp", True) is True

        loaded = repository.get_certificate_by_id(record.id)
        assert loaded.whatsapp_sent is True
        assert loaded.whatsapp_sent_at is not None
        assert loaded.email_sent is False
        assert loaded.email_sent_at is None

        repository.mark_delivered(record.id, "whatsapp", False)
        loaded = repository.get_certificate_by_id(record.id)
        assert loaded.whatsapp_sent is False
        assert loaded.whatsapp_sent_at is None

    def test_mark_delivered_missing_and_unknown_channel(self, repository):
        assert repository.mark_delivered(str(uuid.uuid4()), "email", True) is False

        with pytest.raises(ValidationError):
            repository.mark_delivered(str(uuid.uuid4()), "sms", True)

    def test_set_document_path(self, repository):
        record = repository.create_certificate(make_data(document_path=None))

        assert repository.set_document_path(record.id, "/new/path.pdf") is True
        assert repository.get_certificate_by_id(record.id).document_path == "/new/path.pdf"

    def test_delete(self, repository):
        record = repository.create_certificate(make_data())

        assert repository.delete_certificate(record.id) is True
        assert repository.delete_certificate(record.id) is False
        assert repository.get_certificate_by_id(record.id) is None

    def test_statistics_consistency(self, repository):
        first = repository.create_certificate(make_data("CN-1"))
        second = repository.create_certificate(make_data("CN-2"))
        repository.create_certificate(make_data("CN-3"))

        repository.mark_delivered(first.id, "whatsapp")
        repository.mark_delivered(first.id, "email")
        repository.mark_delivered(second.id, "email")

        stats = repository.get_statistics()
        assert stats == {
            "total": 3,
            "delivered": 2,
            "pending": 1,
            "whatsapp_sent": 1,
            "email_sent": 2,
        }
        assert stats["total"] == stats["delivered"] + stats["pending"]

    def test_health_check(self, db_manager):
        assert db_manager.health_check() is True

    def test_drop_tables(self, db_manager, repository):
        repository.create_certificate(make_data())

        db_manager.drop_tables()
        db_manager.create_tables()

        assert repository.count_all() == 0
