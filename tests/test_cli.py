"""
Тесты для CLI
"""
import pytest

from cli import CertificateCLI


class TestCertificateCLI:
    """Тесты для CLI интерфейса"""

    @pytest.fixture
    def cli(self, settings, service):
        """Фикстура для CLI"""
        return CertificateCLI(settings=settings, service=service)

    def create(self, cli, number="CN-1001"):
        cli.main(["create", "--name", "Asha Rao", "--number", number,
                  "--phone", "9999999999", "--email", "asha@example.com"])
        return cli.service.get_statistics()

    def test_create(self, cli, capsys):
        stats = self.create(cli)

        captured = capsys.readouterr()
        assert "✓ Сертификат успешно создан" in captured.out
        assert "CN-1001" in captured.out
        assert stats.total == 1

    def test_create_duplicate(self, cli, capsys):
        self.create(cli)

        with pytest.raises(SystemExit) as exc_info:
            self.create(cli)

        assert exc_info.value.code == 1
        assert "✗ Ошибка" in capsys.readouterr().out

    def test_create_invalid(self, cli, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["create", "--name", "  ", "--number", "CN-1"])

        assert exc_info.value.code == 1
        assert "✗ Ошибка валидации" in capsys.readouterr().out

    def test_list_and_show(self, cli, capsys):
        self.create(cli)
        certificate = cli.service.list_certificates().data[0]
        capsys.readouterr()

        cli.main(["list"])
        output = capsys.readouterr().out
        assert "CN-1001" in output
        assert certificate.id in output

        cli.main(["show", certificate.id])
        output = capsys.readouterr().out
        assert "✓ Сертификат найден" in output
        assert "whatsapp: ⏳ не отправлен" in output

    def test_list_empty(self, cli, capsys):
        cli.main(["list"])
        assert "Сертификаты не найдены" in capsys.readouterr().out

    def test_show_missing(self, cli, capsys):
        with pytest.raises(SystemExit):
            cli.main(["show", "00000000-0000-0000-0000-000000000000"])

        assert "не найден" in capsys.readouterr().out

    def test_update(self, cli, capsys):
        self.create(cli)
        certificate = cli.service.list_certificates().data[0]

        cli.main(["update", certificate.id, "--email", "new@example.com"])

        assert "✓ Сертификат обновлен" in capsys.readouterr().out
        assert cli.service.get_certificate(certificate.id).email == "new@example.com"

    def test_update_without_fields(self, cli):
        self.create(cli)
        certificate = cli.service.list_certificates().data[0]

        with pytest.raises(SystemExit):
            cli.main(["update", certificate.id])

    def test_send_whatsapp(self, cli, twilio_client, capsys):
        self.create(cli)
        certificate = cli.service.list_certificates().data[0]

        cli.main(["send", certificate.id, "--channel", "whatsapp"])

        output = capsys.readouterr().out
        assert "✓ Сертификат отправлен через whatsapp на +9999999999" in output
        assert "SM1234567890" in output
        assert cli.service.get_certificate(certificate.id).whatsapp_sent is True

    def test_send_unconfigured(self, settings, unconfigured_service, capsys):
        cli = CertificateCLI(settings=settings, service=unconfigured_service)
        self.create(cli)
        certificate = cli.service.list_certificates().data[0]

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["send", certificate.id, "--channel", "email"])

        assert exc_info.value.code == 1
        assert "не настроен" in capsys.readouterr().out

    def test_stats(self, cli, capsys):
        self.create(cli, "CN-1")
        self.create(cli, "CN-2")
        capsys.readouterr()

        cli.main(["stats"])

        output = capsys.readouterr().out
        assert "Всего: 2" in output
        assert "Ожидает отправки: 2" in output

    def test_regenerate_and_delete(self, cli, capsys):
        self.create(cli)
        certificate = cli.service.list_certificates().data[0]

        cli.main(["regenerate", certificate.id])
        assert "✓ PDF перегенерирован" in capsys.readouterr().out

        cli.main(["delete", certificate.id])
        assert "удален" in capsys.readouterr().out
        assert cli.service.get_statistics().total == 0

    def test_init_db(self, cli, capsys):
        cli.main(["init-db"])
        assert "✓ Таблицы базы данных созданы" in capsys.readouterr().out

    def test_no_command(self, cli, capsys):
        cli.main([])
        assert "usage" in capsys.readouterr().out
