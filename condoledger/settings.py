from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="CONDOLEDGER_", extra="ignore")

    db_url: str = "sqlite:///condoledger.db"

    log_level: str = "INFO"
    log_json: bool = False

    currency_symbol: str = "$"
    history_limit: int = 50


settings = Settings()
