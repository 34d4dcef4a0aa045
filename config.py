import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as aquashine.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "aquashine.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Only used by tests / throwaway setups; production runs `flask db upgrade`
    CREATE_TABLES_ON_STARTUP = False

    BUSINESS_NAME = os.getenv("BUSINESS_NAME", "AquaShine")

    # Bearer tokens
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-only-jwt-secret")
    JWT_ALGORITHM = "HS256"
    JWT_EXPIRES_DAYS = int(os.getenv("JWT_EXPIRES_DAYS", "7"))

    # Passwords
    BCRYPT_ROUNDS = 12
    PASSWORD_MIN_LEN = 6
    RESET_TOKEN_TTL_MINUTES = 60

    # Stripe
    STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
    PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "zar")

    # Booking timing windows (minutes)
    COUNTDOWN_MINUTES = 30
    LATE_GRACE_MINUTES = 15

    # Cancel overdue bookings whenever booking lists are read
    AUTO_CANCEL_ON_READ = os.getenv("AUTO_CANCEL_ON_READ", "true").lower() == "true"

    # Slot generation defaults
    SLOT_DAYS_AHEAD = 30
    OPENING_TIME = os.getenv("OPENING_TIME", "08:00")
    CLOSING_TIME = os.getenv("CLOSING_TIME", "17:00")

    # Reporting
    EXPORT_PDF_ROW_LIMIT = 20

    # Used in password reset emails
    FRONTEND_BASE_URL = os.getenv("FRONTEND_BASE_URL", "http://localhost:5173")

    # Email (SMTP)
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

    # Basic app settings
    DEBUG = False


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    CREATE_TABLES_ON_STARTUP = True
    BCRYPT_ROUNDS = 4
    JWT_SECRET_KEY = "test-jwt-secret"
    STRIPE_SECRET_KEY = "sk_test_dummy"
    STRIPE_WEBHOOK_SECRET = "whsec_test_dummy"
    SMTP_HOST = None
