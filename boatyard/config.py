import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Database: DATABASE_URL wins, otherwise a PostgreSQL URL is built from the DB_* parts
    DATABASE_URL = os.getenv("DATABASE_URL", "").strip()
    DB_HOST = os.getenv("DB_HOST")
    DB_PORT = os.getenv("DB_PORT")
    DB_USER = os.getenv("DB_USER")
    DB_PASSWORD = os.getenv("DB_PASSWORD")
    DB_NAME = os.getenv("DB_NAME")
    AUTO_CREATE_TABLES = _env_bool("AUTO_CREATE_TABLES", "false")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # Drag and drop
    DRAG_THRESHOLD_PX = float(os.getenv("DRAG_THRESHOLD_PX", "10"))
    AUTO_SCROLL_EDGE = float(os.getenv("AUTO_SCROLL_EDGE", "100"))
    AUTO_SCROLL_STEP = int(os.getenv("AUTO_SCROLL_STEP", "15"))
    AUTO_SCROLL_INTERVAL = float(os.getenv("AUTO_SCROLL_INTERVAL", "0.016"))

    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    def __repr__(self):
        return f"<Config db={self.DB_NAME or self.DATABASE_URL} log_level={self.LOG_LEVEL}>"


# Singleton
config = Config()
