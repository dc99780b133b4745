from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
import os

EXPO_PUSH_URL = "https://exp.host/--/api/v2/push/send"


class Settings(BaseSettings):
    # Token store (hosted Postgres). Unset disables the notification routes.
    database_url: Optional[str] = None

    # Firebase Cloud Messaging service account, raw JSON
    firebase_service_account_json: Optional[str] = None

    # Expo push service
    expo_push_url: str = EXPO_PUSH_URL
    expo_access_token: Optional[str] = None

    push_request_timeout_seconds: float = 10.0
    notification_sound: str = "notification_sound.wav"
    android_channel_id: str = "NL"
    prune_invalid_tokens: bool = False

    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"
    debug: bool = False

    model_config = SettingsConfigDict(
        env_file=os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', '.env'),
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def database_configured(self) -> bool:
        return bool(self.database_url)

    @property
    def firebase_configured(self) -> bool:
        return bool(self.firebase_service_account_json)


settings = Settings()
