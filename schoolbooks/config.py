# config.py
import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    # Database
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///schoolbooks.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SECRET_KEY = os.getenv("SECRET_KEY", "schoolbooks-dev-secret")

    # JWT
    JWT_SECRET = os.getenv("JWT_SECRET", "devsecret")
    JWT_ALGO = os.getenv("JWT_ALGO", "HS256")
    JWT_TTL_MINUTES = int(os.getenv("JWT_TTL_MINUTES", "60"))

    # Password reset links expire after this many minutes
    PASSWORD_RESET_TTL_MINUTES = int(os.getenv("PASSWORD_RESET_TTL_MINUTES", "60"))
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # Real-time channel + cache; log broadcaster and database cache when unset
    REDIS_URL = os.getenv("REDIS_URL")

    # SMTP
    SMTP_SERVER = os.getenv("SMTP_SERVER", "smtp.example.com")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_LOGIN = os.getenv("SMTP_LOGIN", "user@example.com")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "secret")
    MAIL_FROM_ADDRESS = os.getenv("MAIL_FROM_ADDRESS", "from@example.com")
    MAIL_FROM_NAME = os.getenv("MAIL_FROM_NAME", "SchoolBooks")

    # Outbound HTTP
    HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "10"))
    SMS_BASE_URL = os.getenv("SMS_BASE_URL", "https://api.infobip.com")
    SMS_API_KEY = os.getenv("SMS_API_KEY", "")
    SMS_SENDER = os.getenv("SMS_SENDER", "SchoolBooks")
    PWNED_BASE_URL = os.getenv("PWNED_BASE_URL", "https://api.pwnedpasswords.com")
    PWNED_CHECK_ENABLED = os.getenv("PWNED_CHECK_ENABLED", "1") == "1"
    TLD_SOURCE_URL = os.getenv(
        "TLD_SOURCE_URL", "https://data.iana.org/TLD/tlds-alpha-by-domain.txt"
    )
    TLD_CACHE_TTL = int(os.getenv("TLD_CACHE_TTL", str(7 * 24 * 3600)))

    DEFAULT_PER_PAGE = 15
