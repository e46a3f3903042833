"""
Ядро службы приема и размещения (front desk) для отеля.

Отслеживает жизненный цикл номеров, ведет неизменяемый журнал движений
и складской учет товаров.
"""

__version__ = "0.1.0"
