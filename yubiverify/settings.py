from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_HOSTS = [
    "api.yubico.com",
    "api2.yubico.com",
    "api3.yubico.com",
    "api4.yubico.com",
    "api5.yubico.com",
]


class Settings(BaseSettings):
    # App
    log_level: str = "INFO"

    # Client credential
    client_id: str = ""
    secret_key: str | None = None

    # Validation pool
    api_hosts: list[str] = list(DEFAULT_API_HOSTS)
    api_path: str = "/wsapi/2.0/verify"
    use_https: bool = True

    # Policies
    timeout: float = 10.0  # seconds, per host
    max_time_window: int = 40  # server timestamp ticks, chain mode only
    sync_level: int | str | None = 75

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="YUBICO_",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
