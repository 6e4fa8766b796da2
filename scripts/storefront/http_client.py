"""
Cliente HTTP autenticado con retry y backoff.

Proporciona una capa de abstracción sobre requests con:
- Token Bearer por instancia (sin singletons globales)
- Timeout configurable
- Reintentos con backoff exponencial
- Manejo de rate limiting (429)
- Cache en memoria para consultas idempotentes
- Errores tipados en lugar de respuestas vacías
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import requests

from .errors import (
    NotFoundError,
    ProviderAuthError,
    ProviderFetchError,
    ProviderHTTPError,
)

logger = logging.getLogger(__name__)


class HttpClient:
    """Cliente HTTP con retry y backoff."""

    DEFAULT_HEADERS = {
        "Accept": "application/json",
        "Content-Type": "application/json",
    }

    def __init__(
        self,
        token: Optional[str] = None,
        timeout: int = 30,
        max_retries: int = 3,
        base_delay: float = 1.0,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Inicializa el cliente HTTP.

        Args:
            token: Token Bearer del proveedor. Si es None no se envía
                   cabecera Authorization.
            timeout: Timeout por request en segundos.
            max_retries: Número máximo de intentos.
            base_delay: Delay base entre requests en segundos.
            headers: Headers adicionales para las peticiones.
        """
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.base_delay = base_delay
        self.session = requests.Session()
        self.session.headers.update(self.DEFAULT_HEADERS)
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"
        if headers:
            self.session.headers.update(headers)
        self._cache: Dict[str, Any] = {}

    def get_json(
        self,
        url: str,
        use_cache: bool = False,
        cache_key: Optional[str] = None,
    ) -> Any:
        """
        Realiza una petición GET con retry y backoff.

        Args:
            url: URL a consultar.
            use_cache: Si True, busca/guarda en cache.
            cache_key: Clave para el cache (default: url).

        Returns:
            Respuesta JSON decodificada.

        Raises:
            ProviderAuthError, NotFoundError, ProviderHTTPError,
            ProviderFetchError.
        """
        key = cache_key or url

        if use_cache and key in self._cache:
            logger.debug(f"Cache hit: {key}")
            return self._cache[key]

        data = self._request("GET", url)

        if use_cache:
            self._cache[key] = data
            logger.debug(f"Cache guardado: {key}")

        return data

    def post_json(self, url: str, payload: Any) -> Any:
        """
        Realiza una petición POST con cuerpo JSON.

        Los POST no son idempotentes: sólo se reintentan ante 429 y
        errores de conexión, nunca tras un 5xx.
        """
        return self._request("POST", url, payload=payload)

    def _request(self, method: str, url: str, payload: Any = None) -> Any:
        last_error = ""

        for attempt in range(self.max_retries):
            try:
                logger.debug(f"{method} {url} (intento {attempt + 1}/{self.max_retries})")
                response = self.session.request(
                    method, url, json=payload, timeout=self.timeout
                )

                # Rate limiting
                if response.status_code == 429:
                    wait_time = 2 ** (attempt + 1)
                    logger.warning(f"Rate limited (429). Esperando {wait_time}s...")
                    last_error = "Rate limited (429)"
                    self._sleep_before_retry(attempt, wait_time)
                    continue

                # Otros errores de servidor
                if response.status_code >= 500 and method == "GET":
                    wait_time = 2 ** attempt
                    logger.warning(
                        f"Error de servidor ({response.status_code}). "
                        f"Reintentando en {wait_time}s..."
                    )
                    last_error = f"Status: {response.status_code}"
                    self._sleep_before_retry(attempt, wait_time)
                    continue

                self._raise_for_status(method, url, response)
                return response.json()

            except requests.Timeout:
                logger.warning(f"Timeout en {url} (intento {attempt + 1})")
                last_error = "Timeout"
                self._sleep_before_retry(attempt, 2 ** attempt)

            except requests.ConnectionError as e:
                logger.warning(f"Error de conexión en {url}: {e}")
                last_error = str(e)
                self._sleep_before_retry(attempt, 2 ** attempt)

            except ValueError as e:
                # JSON inválido en una respuesta 2xx
                raise ProviderFetchError(f"Respuesta no JSON de {url}: {e}") from e

            except requests.RequestException as e:
                logger.error(f"Error en {method} {url}: {e}")
                raise ProviderFetchError(f"{method} {url}: {e}") from e

        logger.error(f"Falló después de {self.max_retries} intentos: {url}")
        raise ProviderFetchError(
            f"{method} {url} falló después de {self.max_retries} intentos ({last_error})"
        )

    def _raise_for_status(self, method: str, url: str, response: requests.Response) -> None:
        status = response.status_code
        if status < 400:
            return

        details = self._error_details(response)
        message = f"{method} {url} - Status: {status} {details}".strip()

        if status in (401, 403):
            raise ProviderAuthError(message, status_code=status)
        if status == 404:
            raise NotFoundError(message, status_code=status)
        raise ProviderHTTPError(message, status_code=status)

    @staticmethod
    def _error_details(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200] if response.text else ""
        if isinstance(body, dict):
            return str(body.get("message") or body.get("error") or body)
        return str(body)

    def _sleep_before_retry(self, attempt: int, wait_time: float) -> None:
        if attempt < self.max_retries - 1:
            time.sleep(wait_time)

    def clear_cache(self) -> None:
        """Limpia el cache en memoria."""
        self._cache.clear()
        logger.debug("Cache limpiado")

    def delay(self) -> None:
        """Aplica el delay base entre requests."""
        time.sleep(self.base_delay)
