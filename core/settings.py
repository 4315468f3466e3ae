from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Registry tables and entity tables share this database
    DATABASE_URL: str = "sqlite:///./sections.db"

    # Response cache; memory (cachetools) unless REDIS_URL is set
    REDIS_URL: str | None = None
    CACHE_TTL: int = 3600
    CACHE_MAXSIZE: int = 1024
    CACHE_PREFIX: str = "section-field-api"

    # Comma separated list of origins that are echoed back in
    # Access-Control-Allow-Origin, anything else gets "null"
    ACCESS_CONTROL_ALLOWED_ORIGINS: str | None = None

    # Serializer defaults
    SERIALIZER_TIMEZONE: str = "Europe/Amsterdam"
    SERIALIZER_DEFAULT_DEPTH: int = 20

    # What the info endpoint does when the related section has no entries:
    # "empty" returns an empty list, "inline_error" embeds {"error": message}
    RELATIONSHIP_ERROR_POLICY: str = "empty"

    # Modules imported at startup so their entity classes are registered
    ENTITY_MODULES: str = ""

    # JSON file with manually configured routes
    MANUAL_ROUTES_FILE: str | None = None

    # Identity (used to diversify cache keys, not to enforce access)
    JWT_SECRET_KEY: str | None = None
    JWT_ALGORITHM: str = "HS256"

    DEBUG: bool = False

    # Sentry error tracking
    SENTRY_DSN: str | None = None
    SENTRY_ENVIRONMENT: str = "development"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8"
    }

    @property
    def allowed_origins(self) -> list[str]:
        if not self.ACCESS_CONTROL_ALLOWED_ORIGINS:
            return []
        return [origin.strip() for origin in self.ACCESS_CONTROL_ALLOWED_ORIGINS.split(",") if origin.strip()]

    @property
    def entity_modules(self) -> list[str]:
        return [module.strip() for module in self.ENTITY_MODULES.split(",") if module.strip()]


settings = Settings()
