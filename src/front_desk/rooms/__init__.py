"""
Модуль контекста номеров (Rooms Context).

Отвечает за жизненный цикл номеров (свободен, забронирован, занят,
уборка) и за журнал движений, который фиксирует каждую смену состояния.
"""

from . import application, domain, infrastructure, interfaces

__all__ = [
    "domain",
    "application",
    "infrastructure",
    "interfaces",
]
