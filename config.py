import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

@dataclass
class Settings:
    # Backend API
    api_base_url: str = os.getenv("BIBLIOTHEK_API_URL", "http://localhost:8080/bibliothek")
    api_timeout: float = float(os.getenv("BIBLIOTHEK_TIMEOUT", "10"))
    api_connect_timeout: float = float(os.getenv("BIBLIOTHEK_CONNECT_TIMEOUT", "5"))

    # Listing
    page_size: int = int(os.getenv("PAGE_SIZE", "5"))
    date_display_format: str = os.getenv("DATE_DISPLAY_FORMAT", "%d.%m.%Y")

    # CLI output: plain | json | rich
    output_mode: str = os.getenv("LIB_CLI_OUTPUT", "plain")

    # Application
    app_name: str = os.getenv("APP_NAME", "Bibliothek Desk")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    log_level: str = os.getenv("LOG_LEVEL", "WARNING")
    debug: bool = os.getenv("DEBUG", "False").lower() in ("true", "1", "yes")


settings = Settings()
