import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "default-secret")
    FLASK_ENV = os.getenv("FLASK_ENV", "development")

    # Database
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///mandarin.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "jwt-secret")

    # Locales: simplified chinese, traditional chinese, english
    LOCALES = ("sc", "tc", "en")
    DEFAULT_LOCALE = os.getenv("DEFAULT_LOCALE", "sc")

    # File storage
    STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "local")  # local | s3
    UPLOAD_ROOT = os.getenv("UPLOAD_ROOT", "static")
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_CONTENT_LENGTH", 200 * 1024 * 1024))
    MAX_AUDIO_SIZE = int(os.getenv("MAX_AUDIO_SIZE", 100 * 1024 * 1024))
    MAX_DOC_SIZE = int(os.getenv("MAX_DOC_SIZE", 50 * 1024 * 1024))
    MAX_AVATAR_SIZE = 2 * 1024 * 1024

    AWS_ACCESS_KEY_ID = os.getenv("AWS_ACCESS_KEY_ID")
    AWS_SECRET_ACCESS_KEY = os.getenv("AWS_SECRET_ACCESS_KEY")
    AWS_REGION = os.getenv("AWS_REGION", "us-east-2")
    AWS_S3_BUCKET_NAME = os.getenv("AWS_S3_BUCKET_NAME")
    AWS_CLOUDFRONT_DOMAIN = os.getenv("AWS_CLOUDFRONT_DOMAIN")

    # Pricing
    DEFAULT_LEVEL_PRICE = float(os.getenv("DEFAULT_LEVEL_PRICE", 29.99))

    # Payment Gateway (PayPal). Without credentials orders are trusted as-is.
    PAYPAL_CLIENT_ID = os.getenv("PAYPAL_CLIENT_ID")
    PAYPAL_CLIENT_SECRET = os.getenv("PAYPAL_CLIENT_SECRET")
    PAYPAL_BASE_URL = os.getenv("PAYPAL_BASE_URL", "https://api-m.sandbox.paypal.com")

    # Mail Configuration
    MAIL_SERVER = os.getenv("MAIL_SERVER", "smtp.zoho.com")
    MAIL_PORT = int(os.getenv("MAIL_PORT", 587))
    MAIL_USE_TLS = os.getenv("MAIL_USE_TLS", "True").lower() in ("true", "1", "yes")
    MAIL_USE_SSL = os.getenv("MAIL_USE_SSL", "False").lower() in ("true", "1", "yes")
    MAIL_USERNAME = os.getenv("MAIL_USERNAME")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.getenv(
        "MAIL_DEFAULT_SENDER", "Nancy Teaches Mandarin <no-reply@nancymandarin.com>"
    )

    # Seed admin account (flask seed)
    ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "nancyadm")
    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@nancymandarin.com")
    ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "changeme")
