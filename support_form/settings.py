import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    API_KEY: str = os.getenv("API_KEY", "")
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")
    PORT: int = int(os.getenv("PORT", "4000"))

    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    RQ_QUEUE_NAME: str = os.getenv("RQ_QUEUE_NAME", "support")

    # Uploads (server-side limits for the multipart GraphQL endpoint)
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "uploads")
    UPLOAD_MAX_FILE_BYTES: int = int(os.getenv("UPLOAD_MAX_FILE_BYTES", str(10 * 1024 * 1024)))
    UPLOAD_MAX_FILES: int = int(os.getenv("UPLOAD_MAX_FILES", "10"))
    UPLOAD_CHUNK_BYTES: int = int(os.getenv("UPLOAD_CHUNK_BYTES", "65536"))

    # Per-field attachment limit used by the advanced flow
    ATTACHMENT_MAX_BYTES: int = int(os.getenv("ATTACHMENT_MAX_BYTES", str(8 * 1024 * 1024)))

    # Form sessions driven through /forms
    FORM_SESSION_TTL_SEC: int = int(os.getenv("FORM_SESSION_TTL_SEC", "86400"))
    SUBMISSION_TTL_DAYS: int = int(os.getenv("SUBMISSION_TTL_DAYS", "90"))

    # Help-desk forwarding (optional)
    SUPPORT_WEBHOOK_URL: str = os.getenv("SUPPORT_WEBHOOK_URL", "")
    WEBHOOK_TIMEOUT_SEC: int = int(os.getenv("WEBHOOK_TIMEOUT_SEC", "5"))
    ENABLE_FORWARDING: bool = os.getenv("ENABLE_FORWARDING", "true").lower() == "true"
    SUPPORT_CONTACT_EMAIL: str = os.getenv("SUPPORT_CONTACT_EMAIL", "wecare@aave.com")

    # Remote endpoint used by the terminal wizard / client
    GRAPHQL_ENDPOINT: str = os.getenv("GRAPHQL_ENDPOINT", "http://localhost:4000/graphql")
    CLIENT_TIMEOUT_SEC: float = float(os.getenv("CLIENT_TIMEOUT_SEC", "30"))

    # Security & privacy
    ENABLE_PII_REDACTION: bool = os.getenv("ENABLE_PII_REDACTION", "true").lower() == "true"
    ADMIN_RBAC_ENABLED: bool = os.getenv("ADMIN_RBAC_ENABLED", "true").lower() == "true"
    ADMIN_API_KEY: str = os.getenv("ADMIN_API_KEY", "")

settings = Settings()
