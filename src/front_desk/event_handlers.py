"""
Обработчики доменных событий композиционного корня.

После каждой успешной мутации состояние сохраняется через шлюз.
Сами сервисы о сохранении ничего не знают.
"""

from typing import Callable, Optional

from .shared_kernel import DomainEvent
from .shared_kernel.interfaces import ILogger


def on_state_changed(
    event: DomainEvent, persist: Callable[[], bool], logger: ILogger
) -> None:
    """Сохраняет снимок после изменения; неудача только логируется."""
    if not persist():
        logger.warning(
            "State was not persisted, in-memory data stays authoritative",
            event_type=event.event_type,
            event_id=str(event.event_id),
        )


def on_collection_imported(
    event: DomainEvent,
    release: Callable[[str], None],
    field: str,
    change: Optional[str] = None,
) -> None:
    """
    Импорт заменил коллекцию целиком: ее снова можно сохранять.

    Если задан change, реагирует только на события с таким значением поля change.
    """
    if change is None or getattr(event, "change", None) == change:
        release(field)
