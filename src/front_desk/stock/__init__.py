"""
Модуль складского учета (Stock Context).

Товары и журнал движения товаров: приход и расход со снимками остатка
до и после каждого движения.
"""

from . import application, domain, infrastructure

__all__ = [
    "domain",
    "application",
    "infrastructure",
]
