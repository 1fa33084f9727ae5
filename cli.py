"""
CLI интерфейс для сервиса сертификатов
"""
import argparse
import logging
import sys
from typing import List, Optional

from certdesk.exceptions import CertificateError, ValidationError
from certdesk.models import CHANNELS, Certificate, CertificateCreate, CertificateUpdate
from certdesk.service import CertificateService, create_certificate_service
from config.settings import Settings, get_settings


class CertificateCLI:
    """CLI интерфейс для работы с сертификатами"""

    def __init__(self, settings: Optional[Settings] = None,
                 service: Optional[CertificateService] = None):
        self.settings = settings or get_settings()
        self.setup_logging()

        if service is None:
            self.settings.create_directories()
            service = create_certificate_service(self.settings)
            service.repository.db_manager.create_tables()
        self.service = service

    def setup_logging(self):
        """Настройка логирования"""
        log_dir = self.settings.log_file.parent
        log_dir.mkdir(parents=True, exist_ok=True)

        logging.basicConfig(
            level=getattr(logging, self.settings.log_level),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            handlers=[
                logging.FileHandler(log_dir / 'cli.log', encoding='utf-8'),
                logging.StreamHandler()
            ]
        )
        self.logger = logging.getLogger(__name__)

    def print_certificate(self, certificate: Certificate):
        print(f"  ID: {certificate.id}")
        print(f"  Получатель: {certificate.recipient_name}")
        print(f"  Номер: {certificate.certificate_number}")
        if certificate.award_rera_number:
            print(f"  RERA номер: {certificate.award_rera_number}")
        if certificate.phone_number:
            print(f"  Телефон: {certificate.phone_number}")
        if certificate.email:
            print(f"  Email: {certificate.email}")
        print(f"  Файл: {certificate.document_path}")
        print(f"  Создан: {certificate.created_at.strftime('%d.%m.%Y %H:%M')}")

        for channel, sent in certificate.delivered_via.items():
            print(f"  {channel}: {'✓ отправлен' if sent else '⏳ не отправлен'}")

    def init_db(self, args):
        """Создание таблиц"""
        self.service.repository.db_manager.create_tables()
        print("✓ Таблицы базы данных созданы")

    def create_certificate(self, args):
        """Создание сертификата через CLI"""
        request = CertificateCreate(
            recipient_name=args.name,
            certificate_number=args.number,
            award_rera_number=args.rera,
            description=args.description,
            phone_number=args.phone,
            email=args.email,
        )
        certificate = self.service.create_certificate(request)

        print("✓ Сертификат успешно создан:")
        self.print_certificate(certificate)
        self.logger.info(f"Создан сертификат {certificate.id}")

    def list_certificates(self, args):
        """Список сертификатов"""
        page = self.service.list_certificates(args.limit, args.offset)

        if not page.data:
            print("  Сертификаты не найдены")
            return

        print(f"Сертификаты {page.pagination.offset + 1}-{page.pagination.offset + len(page.data)} "
              f"из {page.pagination.total}:")
        for certificate in page.data:
            status = "✓" if certificate.delivery_sent else "⏳"
            print(f"  {status} {certificate.certificate_number}  {certificate.recipient_name}  ({certificate.id})")

    def show_certificate(self, args):
        certificate = self.service.get_certificate(args.certificate_id)
        print("✓ Сертификат найден:")
        self.print_certificate(certificate)

    def show_statistics(self, args):
        stats = self.service.get_statistics()
        print("Статистика сертификатов:")
        print(f"  Всего: {stats.total}")
        print(f"  Отправлено: {stats.delivered}")
        print(f"  Ожидает отправки: {stats.pending}")
        print(f"  WhatsApp: {stats.whatsapp_sent}")
        print(f"  Email: {stats.email_sent}")

    def update_certificate(self, args):
        """Изменение полей сертификата"""
        fields = {
            "recipient_name": args.name,
            "certificate_number": args.number,
            "award_rera_number": args.rera,
            "description": args.description,
            "phone_number": args.phone,
            "email": args.email,
        }
        changes = {key: value for key, value in fields.items() if value is not None}
        if not changes:
            raise ValidationError("Не указано ни одного поля для изменения")

        certificate = self.service.update_certificate(args.certificate_id, CertificateUpdate(**changes))
        print("✓ Сертификат обновлен:")
        self.print_certificate(certificate)

    def send_certificate(self, args):
        """Отправка сертификата получателю"""
        receipt = self.service.send_certificate(
            args.certificate_id, args.channel, args.to, self.settings.public_base_url
        )
        print(f"✓ Сертификат отправлен через {receipt.channel} на {receipt.destination}")
        print(f"  ID сообщения: {receipt.provider_message_id}")
        print(f"  Статус: {receipt.status}")

    def regenerate_document(self, args):
        certificate = self.service.regenerate_document(args.certificate_id)
        print(f"✓ PDF перегенерирован: {certificate.document_path}")

    def delete_certificate(self, args):
        self.service.delete_certificate(args.certificate_id)
        print(f"✓ Сертификат {args.certificate_id} удален")

    def build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description="Выдача и отправка сертификатов",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Примеры использования:
  %(prog)s create --name "Asha Rao" --number CN-1001 --phone 9999999999
  %(prog)s send 3f0c... --channel whatsapp
  %(prog)s list --limit 20
            """
        )

        subparsers = parser.add_subparsers(dest='command', help='Доступные команды')

        subparsers.add_parser('init-db', help='Создание таблиц базы данных')

        create_parser = subparsers.add_parser('create', help='Создание сертификата')
        create_parser.add_argument('--name', required=True, help='Имя получателя')
        create_parser.add_argument('--number', required=True, help='Номер сертификата')
        create_parser.add_argument('--rera', help='RERA номер награжденного')
        create_parser.add_argument('--description', help='Текст сертификата')
        create_parser.add_argument('--phone', help='Телефон получателя')
        create_parser.add_argument('--email', help='Email получателя')

        list_parser = subparsers.add_parser('list', help='Список сертификатов')
        list_parser.add_argument('--limit', type=int, default=None, help='Размер страницы')
        list_parser.add_argument('--offset', type=int, default=0, help='Смещение')

        show_parser = subparsers.add_parser('show', help='Информация о сертификате')
        show_parser.add_argument('certificate_id', help='ID сертификата')

        subparsers.add_parser('stats', help='Статистика')

        update_parser = subparsers.add_parser('update', help='Изменение сертификата')
        update_parser.add_argument('certificate_id', help='ID сертификата')
        update_parser.add_argument('--name', help='Имя получателя')
        update_parser.add_argument('--number', help='Номер сертификата')
        update_parser.add_argument('--rera', help='RERA номер награжденного')
        update_parser.add_argument('--description', help='Текст сертификата')
        update_parser.add_argument('--phone', help='Телефон получателя')
        update_parser.add_argument('--email', help='Email получателя')

        send_parser = subparsers.add_parser('send', help='Отправка сертификата')
        send_parser.add_argument('certificate_id', help='ID сертификата')
        send_parser.add_argument('--channel', required=True, choices=CHANNELS, help='Канал доставки')
        send_parser.add_argument('--to', help='Телефон или email вместо сохраненного')

        regenerate_parser = subparsers.add_parser('regenerate', help='Повторная генерация PDF')
        regenerate_parser.add_argument('certificate_id', help='ID сертификата')

        delete_parser = subparsers.add_parser('delete', help='Удаление сертификата')
        delete_parser.add_argument('certificate_id', help='ID сертификата')

        return parser

    def main(self, argv: Optional[List[str]] = None):
        """Главная функция CLI"""
        parser = self.build_parser()
        args = parser.parse_args(argv)

        if not args.command:
            parser.print_help()
            return

        commands = {
            'init-db': self.init_db,
            'create': self.create_certificate,
            'list': self.list_certificates,
            'show': self.show_certificate,
            'stats': self.show_statistics,
            'update': self.update_certificate,
            'send': self.send_certificate,
            'regenerate': self.regenerate_document,
            'delete': self.delete_certificate,
        }

        try:
            commands[args.command](args)
        except ValidationError as e:
            print(f"✗ Ошибка валидации: {e.message}")
            sys.exit(1)
        except CertificateError as e:
            print(f"✗ Ошибка: {e.message}")
            if e.details:
                print(f"  {e.details}")
            self.logger.error(f"Команда {args.command} завершилась ошибкой: {e.message}")
            sys.exit(1)
        except ValueError as e:
            # pydantic.ValidationError наследуется от ValueError
            print(f"✗ Ошибка валидации: {e}")
            sys.exit(1)


def main():
    cli = CertificateCLI()
    cli.main()


if __name__ == '__main__':
    main()
