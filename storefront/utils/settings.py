# storefront/utils/settings.py
import os
from decimal import Decimal
from dotenv import load_dotenv

load_dotenv()

STOREFRONT_API_URL = os.getenv("STOREFRONT_API_URL", "https://backend-online-marketplace.vercel.app")
STOREFRONT_API_TIMEOUT = float(os.getenv("STOREFRONT_API_TIMEOUT", 10))
DEFAULT_SHIPPING_METHOD = os.getenv("DEFAULT_SHIPPING_METHOD", "Standard")
DEFAULT_SHIPPING_COST = Decimal(os.getenv("DEFAULT_SHIPPING_COST", "15000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
MOCK_BACKEND_HOST = os.getenv("MOCK_BACKEND_HOST", "0.0.0.0")
MOCK_BACKEND_PORT = int(os.getenv("MOCK_BACKEND_PORT", 8000))
