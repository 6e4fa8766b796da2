"""
Almacenamiento clave/valor persistente.

Equivalente al localStorage del navegador: cada clave guarda un string
(JSON serializado). FileStorage escribe todo el documento de una vez
para que un fallo nunca deje una colección a medio escribir.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import CartNotLoadedError

logger = logging.getLogger(__name__)

CART_STORAGE_KEY = "myEcomCart"
WISHLIST_STORAGE_KEY = "storeWishlist"


class Storage(ABC):
    """Contrato mínimo de almacenamiento."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        pass


class MemoryStorage(Storage):
    """Almacenamiento en memoria (pruebas y sesiones efímeras)."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)


class FileStorage(Storage):
    """
    Almacenamiento en un archivo JSON.

    Todas las claves viven en un único documento {clave: string}.
    """

    def __init__(self, path: Path):
        """
        Inicializa el almacenamiento.

        Args:
            path: Ruta del archivo JSON. El directorio se crea al escribir.
        """
        self.path = Path(path)

    def get_item(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error al leer {self.path}: {e}. Se usa un almacenamiento vacío")
            return {}

        if not isinstance(data, dict):
            logger.error(f"Formato inesperado en {self.path}. Se usa un almacenamiento vacío")
            return {}
        return data

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.debug(f"Almacenamiento guardado: {self.path}")


class LoadState(Enum):
    """Estado de un store persistido."""

    UNINITIALIZED = "uninitialized"
    LOADED = "loaded"


class PersistedStore(ABC):
    """
    Colección que se carga una vez y se persiste tras cada cambio.

    La persistencia sólo ocurre en estado LOADED, así un valor inicial
    vacío nunca pisa lo que ya estaba guardado.
    """

    STORAGE_KEY: str = ""

    def __init__(self, storage: Storage, key: Optional[str] = None):
        self.storage = storage
        self.key = key or self.STORAGE_KEY
        self.state = LoadState.UNINITIALIZED

    @property
    def is_loaded(self) -> bool:
        return self.state is LoadState.LOADED

    def load(self) -> None:
        """
        Carga la colección desde el almacenamiento.

        Un valor corrupto se elimina y la colección queda vacía.
        """
        if self.is_loaded:
            return

        raw = self.storage.get_item(self.key)
        if raw:
            try:
                self._restore(json.loads(raw))
            except (ValueError, KeyError, TypeError, AttributeError) as e:
                logger.error(f"Error al leer '{self.key}' del almacenamiento: {e}. Se reinicia")
                self.storage.remove_item(self.key)
                self._reset()

        self.state = LoadState.LOADED
        logger.debug(f"Store '{self.key}' cargado")

    def _require_loaded(self) -> None:
        if not self.is_loaded:
            raise CartNotLoadedError(
                f"'{self.key}' debe cargarse con load() antes de modificarlo"
            )

    def _persist(self) -> None:
        if not self.is_loaded:
            return
        self.storage.set_item(self.key, json.dumps(self._snapshot(), ensure_ascii=False))

    @abstractmethod
    def _restore(self, data: Any) -> None:
        """Sustituye el estado en memoria por los datos leídos."""
        pass

    @abstractmethod
    def _reset(self) -> None:
        pass

    @abstractmethod
    def _snapshot(self) -> Any:
        """Estado serializable en JSON."""
        pass
