"""All settings, loaded from the environment and the .env file."""
from functools import lru_cache
from urllib.parse import quote

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # App
    app_env: str = "development"
    app_host: str = "127.0.0.1"
    app_port: int = 8000
    log_level: str = "INFO"
    log_file: str = "/var/log/readit/readit.log"

    # Postgres (same variables the compose file passes to the container)
    postgres_user: str = "readit"
    postgres_password: str = "readit"
    postgres_db: str = "readit"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_sslmode: str = "disable"
    database_url: str = ""  # overrides the postgres_* fields when set

    # Migrations
    migrations_path: str = "./internal/migrations"
    migrations_table: str = "schema_migrations"
    migrations_seq_digits: int = 6

    # Compose
    compose_file: str = "docker-compose.yml"
    compose_service: str = "postgres"
    db_container: str = "postgres"
    healthcheck_interval: float = 10
    healthcheck_timeout: float = 5
    healthcheck_retries: int = 5

    # Build
    binary_name: str = "readit"
    build_dir: str = "/tmp/bin"
    coverage_dir: str = "/tmp/coverage"
    deploy_platform: str = "manylinux2014_x86_64-cp-312-cp312"

    @property
    def dsn(self) -> str:
        """Connection string in the form the migrate CLI and psql accept."""
        if self.database_url:
            return self.database_url
        return (
            f"postgres://{quote(self.postgres_user, safe='')}:{quote(self.postgres_password, safe='')}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
            f"?sslmode={self.postgres_sslmode}"
        )

    @property
    def sqlalchemy_url(self) -> str:
        url = self.dsn
        for old in ("postgres://", "postgresql://"):
            if url.startswith(old):
                return url.replace(old, "postgresql+psycopg2://", 1)
        return url

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()
