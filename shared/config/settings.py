import os
from dotenv import load_dotenv

load_dotenv()

DB_USER = os.getenv("POSTGRES_USER", "postgres")
DB_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
DB_HOST = os.getenv("POSTGRES_HOST", "localhost") # In Docker, this will be 'postgres'
DB_PORT = os.getenv("POSTGRES_PORT", "5433")
DB_NAME = os.getenv("POSTGRES_DB", "ecommerce")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)
DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"

# Catalog rules
CATEGORY_DISPLAY_ORDER_MIN = int(os.getenv("CATEGORY_DISPLAY_ORDER_MIN", "1"))
CATEGORY_DISPLAY_ORDER_MAX = int(os.getenv("CATEGORY_DISPLAY_ORDER_MAX", "100"))

# Quantity tiers: Price for 1-49, Price50 for 50-99, Price100 for 100+
PRICE_TIER_50_MIN_COUNT = int(os.getenv("PRICE_TIER_50_MIN_COUNT", "50"))
PRICE_TIER_100_MIN_COUNT = int(os.getenv("PRICE_TIER_100_MIN_COUNT", "100"))

# Company customers are billed on net terms
NET_TERMS_DAYS = int(os.getenv("NET_TERMS_DAYS", "30"))

# External collaborators
PAYMENT_GATEWAY_URL = os.getenv("PAYMENT_GATEWAY_URL", "http://localhost:8003")
PAYMENT_GATEWAY_API_KEY = os.getenv("PAYMENT_GATEWAY_API_KEY", "")
GATEWAY_TIMEOUT_SECONDS = float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10.0"))
NOTIFICATION_WEBHOOK_URL = os.getenv("NOTIFICATION_WEBHOOK_URL", "")

# Observability
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT", "")
METRICS_PORT = int(os.getenv("METRICS_PORT", "0"))
