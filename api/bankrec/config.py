from pydantic_settings import BaseSettings
from pydantic import Field, AnyUrl

from .services.policy import ReconciliationPolicy


class Settings(BaseSettings):
    app_name: str = "Bank Reconciliation API"
    app_env: str = Field("development", alias="APP_ENV")
    app_url: AnyUrl | str = Field("http://localhost:3000", alias="APP_URL")
    api_url: AnyUrl | str = Field("http://localhost:8000", alias="API_URL")

    database_url: str = Field("sqlite:///./bankrec.db", alias="DATABASE_URL")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    default_report_heading: str = Field("Bank Reconciliation Statement", alias="DEFAULT_REPORT_HEADING")

    # Reconciliation policy switches, see services/policy.py
    require_narration: bool = Field(True, alias="REQUIRE_NARRATION")
    block_duplicates: bool = Field(True, alias="BLOCK_DUPLICATES")
    broadcast_while_editing: bool = Field(True, alias="BROADCAST_WHILE_EDITING")
    export_requires_reconciled: bool = Field(False, alias="EXPORT_REQUIRES_RECONCILED")

    class Config:
        env_file = ".env"
        case_sensitive = False

    def policy(self) -> ReconciliationPolicy:
        return ReconciliationPolicy(
            require_narration=self.require_narration,
            block_duplicates=self.block_duplicates,
            broadcast_while_editing=self.broadcast_while_editing,
            export_requires_reconciled=self.export_requires_reconciled,
        )
