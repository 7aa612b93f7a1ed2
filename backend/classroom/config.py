from dataclasses import dataclass
import os

from dotenv import load_dotenv


load_dotenv()


@dataclass(frozen=True)
class Settings:
    app_name: str
    database_url: str
    log_level: str
    max_import_rows: int
    bcrypt_rounds: int
    cloudinary_cloud_name: str
    cloudinary_api_key: str
    cloudinary_api_secret: str
    upload_folder: str
    signed_url_ttl_seconds: int
    import_base_url: str
    data_dir: str


def get_settings() -> Settings:
    return Settings(
        app_name=os.getenv("APP_NAME", "classroom"),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./classroom.db"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        max_import_rows=int(os.getenv("MAX_IMPORT_ROWS", "1000")),
        bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "10")),
        cloudinary_cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME", ""),
        cloudinary_api_key=os.getenv("CLOUDINARY_API_KEY", ""),
        cloudinary_api_secret=os.getenv("CLOUDINARY_API_SECRET", ""),
        upload_folder=os.getenv("UPLOAD_FOLDER", "lms"),
        signed_url_ttl_seconds=int(os.getenv("SIGNED_URL_TTL_SECONDS", "86400")),
        import_base_url=os.getenv("IMPORT_BASE_URL", "http://localhost:8000"),
        data_dir=os.getenv("DATA_DIR", "./data"),
    )
