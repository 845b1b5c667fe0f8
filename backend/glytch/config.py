from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    DATABASE_URL: str
    REDIS_URL: str
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 10080  # 7 days

    # GitHub OAuth app
    GITHUB_CLIENT_ID: str = ""
    GITHUB_CLIENT_SECRET: str = ""
    GITHUB_REDIRECT_URI: str = "http://localhost:8000/api/auth/github/callback"
    GITHUB_OAUTH_URL: str = "https://github.com/login/oauth"
    GITHUB_API_URL: str = "https://api.github.com"

    # GitHubVerifier contract on Sepolia
    RPC_URL: str = "https://ethereum-sepolia-rpc.publicnode.com"
    CHAIN_ID: int = 11155111
    GITHUB_VERIFIER_ADDRESS: str = "0x62F7448dd19DF9059B55F4fE670c41021D002fEf"

    # Binding protocol windows (seconds)
    VERIFICATION_WINDOW_SECONDS: int = 600
    IDENTITY_TTL_SECONDS: int = 600
    SYNCED_IDENTITY_TTL_SECONDS: int = 86400
    VERIFY_SIGNATURE_OFFCHAIN: bool = True

    COOKIE_SECURE: bool = False
    FRONTEND_URL: str = "http://localhost:3000"
    CORS_ORIGINS: str = ""
    LOG_LEVEL: str = "INFO"

    @field_validator('DATABASE_URL', mode='before')
    @classmethod
    def convert_database_url(cls, v):
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()] or [self.FRONTEND_URL]

settings = Settings()
