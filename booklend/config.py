import os


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "super-secret-key")

    SQLALCHEMY_DATABASE_URI = os.getenv(
        "SQLALCHEMY_DATABASE_URI",
        "sqlite:///booklend.db"
    )

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "jwt-super-secret")

    # Circulation policy
    LOAN_PERIOD_DAYS = int(os.getenv("LOAN_PERIOD_DAYS", "14"))
    FINE_PER_DAY = int(os.getenv("FINE_PER_DAY", "2"))
    MAX_STOCK = int(os.getenv("MAX_STOCK", "200"))
    COPY_COUNTER_NAME = os.getenv("COPY_COUNTER_NAME", "bookId")

    # Integrity audit job
    SCHEDULER_ENABLED = os.getenv("SCHEDULER_ENABLED", "0") == "1"
    INTEGRITY_CHECK_MINUTES = int(os.getenv("INTEGRITY_CHECK_MINUTES", "10"))


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET_KEY = "test-jwt-secret-with-enough-length-for-hs256"
    SCHEDULER_ENABLED = False
