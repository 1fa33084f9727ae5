"""
Модуль для работы с файловым хранилищем PDF сертификатов
"""
import logging
import os
import uuid
from pathlib import Path
from typing import Union

from .exceptions import StorageError, ValidationError

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/certificates"


class DocumentStorage:
    """Класс для работы с файловым хранилищем"""

    def __init__(self, base_path: Union[str, Path] = "public/certificates"):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def path_for(self, certificate_id: str) -> Path:
        """
        Путь к PDF сертификата

        Имя файла всегда <id>.pdf, поэтому повторная генерация
        перезаписывает прежний файл.

        Raises:
            ValidationError: Если id не является UUID
        """
        try:
            safe_id = str(uuid.UUID(str(certificate_id)))
        except ValueError:
            raise ValidationError(f"Некорректный ID сертификата: {certificate_id}")

        return self.base_path / f"{safe_id}.pdf"

    def save_document(self, certificate_id: str, content: bytes) -> Path:
        """
        Сохранение PDF в файл

        Args:
            certificate_id: ID сертификата
            content: Содержимое PDF

        Returns:
            Путь к сохраненному файлу
        """
        file_path = self.path_for(certificate_id)

        try:
            with open(file_path, 'wb') as f:
                f.write(content)

            # Установка прав доступа
            os.chmod(file_path, 0o644)

            return file_path

        except OSError as e:
            raise StorageError("Ошибка сохранения файла", str(e))

    def exists(self, path: Union[str, Path, None]) -> bool:
        """Проверка наличия файла"""
        return bool(path) and Path(path).is_file()

    def delete_document(self, path: Union[str, Path]) -> bool:
        """
        Удаление PDF

        Returns:
            True если файл удален, False если его уже не было

        Raises:
            StorageError: При ошибке удаления
        """
        file_path = Path(path)
        try:
            file_path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError("Ошибка удаления файла", str(e))

    def public_path(self, certificate_id: str) -> str:
        """Публичный путь к PDF"""
        return f"{PUBLIC_PREFIX}/{certificate_id}.pdf"

    def public_url(self, base_url: str, certificate_id: str) -> str:
        """Полная ссылка на PDF"""
        return f"{base_url.rstrip('/')}{self.public_path(certificate_id)}"

    def get_storage_stats(self) -> dict:
        """Статистика хранилища"""
        files = list(self.base_path.glob("*.pdf"))
        return {
            "path": str(self.base_path),
            "documents": len(files),
            "total_size": sum(f.stat().st_size for f in files),
        }
