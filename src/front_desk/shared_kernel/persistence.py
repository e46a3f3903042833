"""
Шлюз сохранения.

Хранит коллекции снимка состояния в хранилище "ключ - строка". Каждая
коллекция лежит под своим ключом в виде JSON-списка простых записей.
Ошибки чтения и записи не выбрасываются наружу: они логируются, а состояние
в памяти остается основным.
"""

import json
from pathlib import Path
from typing import Dict, Generic, Optional, Sequence, Set, Type, TypeVar, get_args

from pydantic import BaseModel

from . import interfaces as ports
from .infrastructure import LoggingAdapter
from .transfer import select_valid_records

S = TypeVar("S", bound=BaseModel)


class InMemoryBlobStore(ports.IBlobStore):
    """Хранилище блобов в памяти."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._blobs: Dict[str, str] = dict(initial or {})

    def read(self, key: str) -> Optional[str]:
        return self._blobs.get(key)

    def write(self, key: str, blob: str) -> None:
        self._blobs[key] = blob

    def delete(self, key: str) -> None:
        self._blobs.pop(key, None)

    def keys(self):
        return list(self._blobs)


class JsonDirectoryBlobStore(ports.IBlobStore):
    """Хранилище блобов на диске: один JSON-файл на ключ."""

    def __init__(self, directory: str) -> None:
        """
        Инициализирует хранилище.

        Args:
            directory: Каталог, в котором лежат файлы <key>.json
        """
        self._directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self._directory / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def write(self, key: str, blob: str) -> None:
        # Создаем директорию, если она не существует
        self._directory.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path(key).with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(blob)
        tmp_path.replace(self._path(key))

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class SnapshotGateway(Generic[S]):
    """
    Загружает и сохраняет снимок состояния.

    keys сопоставляет поле снимка (список записей) с ключом хранилища.
    Каждая коллекция читается независимо: поврежденный ключ не мешает
    загрузить остальные.
    """

    def __init__(
        self,
        store: ports.IBlobStore,
        snapshot_model: Type[S],
        keys: Dict[str, str],
        logger: Optional[ports.ILogger] = None,
        required_fields: Optional[Dict[str, Sequence[str]]] = None,
    ) -> None:
        self._store = store
        self._snapshot_model = snapshot_model
        self._keys = keys
        self._logger = logger or LoggingAdapter(__name__)
        self._required_fields = required_fields or {}
        # Поля снимка, чьи данные в хранилище не удалось прочитать
        self._protected: Set[str] = set()

    @property
    def protected(self) -> Set[str]:
        return set(self._protected)

    def _item_model(self, field: str) -> Type[BaseModel]:
        annotation = self._snapshot_model.model_fields[field].annotation
        return get_args(annotation)[0]

    def _read_collection(self, key: str) -> Optional[list]:
        try:
            blob = self._store.read(key)
            if blob is None or not blob.strip():
                return []
            raw = json.loads(blob)
        except (OSError, ValueError) as e:
            self._logger.error("Failed to read stored collection", key=key, error=str(e))
            return None
        if not isinstance(raw, list):
            self._logger.error(
                "Stored collection is not a list", key=key, found=type(raw).__name__
            )
            return None
        return raw

    def load(self) -> Optional[S]:
        """
        Возвращает снимок или None, если сохраненных записей нет.

        Записи, не прошедшие проверку, отбрасываются с предупреждением.
        Ключ, который не удалось прочитать, остается в хранилище как есть
        и не перезаписывается до release() или clear().
        """
        collections: Dict[str, list] = {}
        for field, key in self._keys.items():
            raw = self._read_collection(key)
            if raw is None:
                self._protected.add(field)
                collections[field] = []
                continue
            collections[field] = select_valid_records(
                raw,
                self._item_model(field),
                self._required_fields.get(field, ()),
                self._logger,
            )

        if not any(collections.values()):
            return None
        return self._snapshot_model(**collections)

    def save(self, snapshot: S) -> bool:
        """
        Сохраняет снимок.

        Возвращает False при ошибке записи или если часть ключей защищена.
        """
        data = snapshot.model_dump(mode="json", by_alias=True)
        skipped = []
        try:
            for field, key in self._keys.items():
                if field in self._protected:
                    skipped.append(key)
                    continue
                self._store.write(
                    key, json.dumps(data[field], indent=2, ensure_ascii=False)
                )
        except OSError as e:
            self._logger.error("Failed to save snapshot", error=str(e))
            return False
        if skipped:
            self._logger.warning("Unreadable stored data left untouched", keys=skipped)
            return False
        self._logger.debug(
            "Snapshot saved", model=self._snapshot_model.__name__, keys=list(self._keys.values())
        )
        return True

    def release(self, field: str) -> None:
        """Разрешает перезапись коллекции, например после ее импорта."""
        if field in self._protected:
            self._protected.discard(field)
            self._logger.info("Stored collection may be overwritten again", key=self._keys[field])

    def has_data(self) -> bool:
        """Есть ли в хранилище хоть что-то под ключами снимка."""
        try:
            return any(
                (self._store.read(key) or "").strip() for key in self._keys.values()
            )
        except OSError:
            return True

    def clear(self) -> None:
        for key in self._keys.values():
            self._store.delete(key)
        self._protected.clear()
