from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="COMPLIANCE_")

    app_name: str = "Compliance Rollups"
    database_url: str = "sqlite:///./compliance.db"
    log_level: str = "INFO"

    # window used by /rollups when the request does not name one
    default_window: str = "30d"

    # cross-agency weights for the portfolio compliance score
    weight_permit: float = 1.0
    weight_sanitation_violation: float = 1.0
    weight_housing_violation: float = 1.0
    weight_emissions_filing: float = 1.0

    # upstream fan-out
    fetch_max_workers: int = 4


settings = Settings()
