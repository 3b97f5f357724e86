from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str

    # If DEV and you hit SSL cert issues on Windows, set DB_SSL_VERIFY=false in .env
    DB_SSL_VERIFY: bool = True

    ENV: str = "dev"  # "dev" or "prod"

    # --- SESSION TOKENS (issued by the identity provider) ---
    # HS256 shared secret, or the provider's PEM public key with RS256
    SESSION_JWT_KEY: str
    SESSION_JWT_ALGORITHM: str = "HS256"

    # --- IDENTITY PROVIDER (Clerk) ---
    CLERK_SECRET_KEY: str | None = None
    CLERK_API_URL: str = "https://api.clerk.com/v1"
    CLERK_WEBHOOK_SECRET: str | None = None

    # Accounts signing up with this address are bootstrapped as sysadmin
    SUPER_ADMIN_EMAIL: str | None = None

    # --- STORAGE (Supabase buckets) ---
    SUPABASE_URL: str | None = None
    SUPABASE_KEY: str | None = None
    ATTACHMENTS_BUCKET: str = "project-attachments"
    MAX_ATTACHMENT_SIZE: int = 10 * 1024 * 1024

    REDIS_URL: str | None = None

    # Seconds between approval re-checks while waiting for approval
    APPROVAL_POLL_INTERVAL: float = 30.0

    FRONTEND_URL: str = "http://localhost:3000"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
