import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    APP_NAME: str = "Pharmacy Delivery Backend"
    SQLALCHEMY_DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./pharmacy.db")
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "change_this_secret")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # OTP lifecycle
    OTP_EXPIRY_MINUTES: int = int(os.getenv("OTP_EXPIRY_MINUTES", "5"))
    OTP_THROTTLE_MAX: int = int(os.getenv("OTP_THROTTLE_MAX", "5"))
    OTP_THROTTLE_WINDOW_HOURS: int = int(os.getenv("OTP_THROTTLE_WINDOW_HOURS", "1"))
    OTP_HASH_SECRET: str = os.getenv("OTP_HASH_SECRET", JWT_SECRET_KEY)
    OTP_PURGE_INTERVAL_SECONDS: int = int(os.getenv("OTP_PURGE_INTERVAL_SECONDS", "600"))

    # console, sms or email
    OTP_DELIVERY_CHANNEL: str = os.getenv("OTP_DELIVERY_CHANNEL", "console").lower()

    # Brevo API (SMS + email)
    BREVO_API_KEY: str = os.getenv("BREVO_API_KEY", "")
    SMS_SENDER: str = os.getenv("SMS_SENDER", "PHARMA")
    SMS_COUNTRY_CODE: str = os.getenv("SMS_COUNTRY_CODE", "91")
    EMAIL_FROM_ADDRESS: str = os.getenv("EMAIL_FROM_ADDRESS", "noreply@example.com")
    EMAIL_FROM_NAME: str = os.getenv("EMAIL_FROM_NAME", "Pharmacy Delivery")

    # Per-IP limit on the auth routes
    RATE_LIMIT_ENABLED: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
    AUTH_RATE_LIMIT: str = os.getenv("AUTH_RATE_LIMIT", "20/15 minutes")

settings = Settings()
