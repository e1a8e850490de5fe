from __future__ import annotations
import os

DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite+aiosqlite:///./data/costguard.db")
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "8080"))
PAYMENT_URL = os.environ.get("PAYMENT_URL", "https://buy.stripe.com/test_eVq6oH8mqf5WeQJ2jQ")
PRICE_USD = float(os.environ.get("PRICE_USD", "19"))
MAX_BODY_BYTES = int(os.environ.get("MAX_BODY_BYTES", str(2 * 1024 * 1024)))
