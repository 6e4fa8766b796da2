"""
Configuración de la tienda usando variables de entorno.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

# Cargar variables de entorno desde .env
load_dotenv()


def get_provider_config():
    """
    Obtiene las credenciales de los proveedores.

    Un proveedor sin token queda deshabilitado.

    Returns:
        dict: Tokens de Gumroad y Printify y la tienda de Printify
    """
    return {
        'gumroad_token': os.getenv('GUMROAD_ACCESS_TOKEN', ''),
        'printify_token': os.getenv('PRINTIFY_API_TOKEN', ''),
        'printify_shop_id': os.getenv('PRINTIFY_SHOP_ID') or None,
    }


def get_http_config():
    """Parámetros del cliente HTTP."""
    return {
        'timeout': int(os.getenv('HTTP_TIMEOUT', '30')),
        'max_retries': int(os.getenv('HTTP_MAX_RETRIES', '3')),
        'base_delay': float(os.getenv('HTTP_BASE_DELAY', '1.0')),
    }


def get_storage_config():
    """
    Obtiene la ubicación del almacenamiento del carrito y la lista de deseos.

    Returns:
        dict: Ruta del archivo JSON de estado
    """
    data_dir = Path(os.getenv('STOREFRONT_DATA_DIR', Path.home() / '.storefront'))
    return {
        'path': data_dir / 'storage.json',
    }


def get_checkout_config():
    return {
        'bundle_endpoint_url': os.getenv('BUNDLE_ENDPOINT_URL', ''),
        'bundle_discount_percent': float(os.getenv('BUNDLE_DISCOUNT_PERCENT', '0')),
    }


def get_server_config():
    return {
        'host': os.getenv('STOREFRONT_HOST', '127.0.0.1'),
        'port': int(os.getenv('STOREFRONT_PORT', '8000')),
    }


def get_log_level():
    return os.getenv('LOG_LEVEL', 'INFO').upper()
