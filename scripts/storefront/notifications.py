"""
Notificaciones para el usuario.

Sustituye a los toasts de la interfaz: cada aviso se registra en el log
y queda en el historial para que el llamador lo muestre.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger(__name__)

SUCCESS = "success"
WARNING = "warning"
ERROR = "error"


@dataclass(frozen=True)
class Notification:
    level: str
    message: str


class Notifier:
    """Recoge avisos para el usuario."""

    def __init__(self):
        self.history: List[Notification] = []

    def success(self, message: str) -> None:
        self._emit(SUCCESS, message, logging.INFO)

    def warning(self, message: str) -> None:
        self._emit(WARNING, message, logging.WARNING)

    def error(self, message: str) -> None:
        self._emit(ERROR, message, logging.ERROR)

    def messages(self, level: Optional[str] = None) -> List[str]:
        """Mensajes emitidos, opcionalmente filtrados por nivel."""
        return [n.message for n in self.history if level is None or n.level == level]

    def clear(self) -> None:
        self.history.clear()

    def _emit(self, level: str, message: str, log_level: int) -> None:
        self.history.append(Notification(level=level, message=message))
        logger.log(log_level, message)
