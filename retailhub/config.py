from dotenv import load_dotenv
load_dotenv()  # Load environment variables from .env file

import os

# Access env variables
DB_USERNAME = os.getenv("DB_USERNAME")
DB_PASSWORD = os.getenv("DB_PASSWORD")
DB_CLUSTER = os.getenv("DB_CLUSTER")
DB_NAME = os.getenv("DB_NAME", "retailhub")


def _env_flag(name, default="false"):
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


def _atlas_uri():
    if DB_USERNAME and DB_PASSWORD and DB_CLUSTER:
        return f"mongodb+srv://{DB_USERNAME}:{DB_PASSWORD}@{DB_CLUSTER}.mongodb.net/{DB_NAME}?retryWrites=true&w=majority"
    return None


class Config:
    """Base configuration class."""
    APP_NAME = os.getenv("APP_NAME", "RetailHub")

    SECRET_KEY = os.getenv("SECRET_KEY", "your_default_secret_key")
    DEBUG = os.getenv("FLASK_DEBUG", "False") == "True"
    TESTING = False
    MONGO_URI = os.getenv("MONGO_URI") or _atlas_uri() or "mongodb://localhost:27017/retailhub"
    DB_NAME = DB_NAME

    REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))

    # ========================================
    # PLAN ENGINE
    # ========================================
    PLAN_LOCK_BACKEND = os.getenv("PLAN_LOCK_BACKEND", "redis")  # 'redis' or 'local'
    PLAN_LOCK_TIMEOUT_SECONDS = float(os.getenv("PLAN_LOCK_TIMEOUT_SECONDS", 10))
    PLAN_LOCK_WAIT_SECONDS = float(os.getenv("PLAN_LOCK_WAIT_SECONDS", 5))
    PLAN_USE_TRANSACTIONS = _env_flag("PLAN_USE_TRANSACTIONS", "true")
    DISABLE_PLAN_LIMITS = _env_flag("DISABLE_PLAN_LIMITS")

class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    PLAN_USE_TRANSACTIONS = _env_flag("PLAN_USE_TRANSACTIONS", "false")

class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    MONGO_URI = os.getenv("TEST_MONGO_URI", "mongodb://localhost:27017/testdb")
    SECRET_KEY = "testing-secret-key-for-the-plan-engine"
    PLAN_LOCK_BACKEND = "local"
    PLAN_LOCK_WAIT_SECONDS = 1
    DISABLE_PLAN_LIMITS = False

class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    MONGO_URI = os.getenv("PROD_MONGO_URI") or Config.MONGO_URI


CONFIG_BY_NAME = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def load_config(app, config_name=None):
    config_name = config_name or os.getenv("APP_ENV", "development")
    app.config.from_object(CONFIG_BY_NAME.get(config_name, DevelopmentConfig))
    app.config["APP_ENV"] = config_name
