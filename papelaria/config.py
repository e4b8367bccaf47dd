from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    shop_name: str = "Papelaria BH"
    pix_key: str = "82987616759"

    blocked_numbers: str = ""
    timezone: str = "America/Sao_Paulo"

    # Python weekday numbers: 0 = Monday ... 6 = Sunday
    business_first_weekday: int = 0
    business_last_weekday: int = 5
    business_open_hour: int = 8
    business_close_hour: int = 18

    handoff_option: int = 6
    close_option: int = 0
    handoff_minutes: float = 15
    pickup_notice_delay_minutes: float = 5
    feedback_request_delay_minutes: float = 6

    catalog_path: Optional[str] = None
    upload_dir: str = "./uploads"

    gateway_base_url: str = "http://localhost:3000/api"
    gateway_token: Optional[str] = None
    gateway_instance_id: Optional[str] = None
    gateway_timeout_seconds: float = 30.0

    alert_bot_token: Optional[str] = None
    alert_chat_id: Optional[str] = None

    log_level: str = "INFO"
    log_file: Optional[str] = None

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def blocked_ids(self) -> frozenset[str]:
        return frozenset(item.strip() for item in self.blocked_numbers.split(",") if item.strip())


settings = Settings()
