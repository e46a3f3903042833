"""
Пакетный импорт простых записей.
"""

from typing import Any, Iterable, List, Mapping, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError
from pydantic.alias_generators import to_camel, to_snake

from .interfaces import ILogger

M = TypeVar("M", bound=BaseModel)


def has_required_fields(record: Mapping[str, Any], required: Sequence[str]) -> bool:
    """Проверяет, что каждое обязательное поле есть (в camelCase или snake_case) и не пустое."""
    for field in required:
        value = record.get(field)
        if value is None:
            value = record.get(to_camel(field), record.get(to_snake(field)))
        if value is None or value == "":
            return False
    return True


def select_valid_records(
    records: Iterable[Any],
    model: Type[M],
    required: Sequence[str],
    logger: ILogger,
) -> List[M]:
    """
    Отбирает записи, пригодные для импорта.

    Запись принимается, если это словарь с обязательными полями,
    который проходит валидацию модели. Остальные записи пропускаются
    с предупреждением в логе.
    """
    accepted: List[M] = []
    skipped = 0
    for raw in records:
        if not isinstance(raw, Mapping) or not has_required_fields(raw, required):
            skipped += 1
            continue
        try:
            accepted.append(model.model_validate(dict(raw)))
        except ValidationError as e:
            skipped += 1
            logger.debug(
                f"Skipping invalid {model.__name__} record",
                error=str(e),
                record_id=raw.get("id"),
            )
    if skipped:
        logger.warning(
            f"{skipped} {model.__name__} record(s) rejected",
            accepted=len(accepted),
        )
    return accepted
