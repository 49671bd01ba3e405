from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # API Security
    api_key: str | None = None  # Required to serve the HTTP API

    # Remote segment services
    sponsorblock_api_url: str = "https://sponsor.ajay.app/api"
    bilibili_api_url: str = "https://sponsor.ajay.app/api"  # BV ids, no service parameter
    dearrow_api_url: str = "https://dearrow.ajay.app/api"
    user_agent: str = "segskip/1.0"

    # Network timeouts
    request_timeout_seconds: float = 10.0
    branding_timeout_seconds: float = 5.0

    # Cache settings
    segment_cache_ttl_seconds: int = 1800  # 30 minutes
    branding_cache_ttl_seconds: int = 600  # 10 minutes

    # Local state
    user_id_path: str = "~/.segskip/user_id"
    options_path: str | None = None  # None keeps options in memory only

    # Decision engine timing
    monitor_interval_seconds: float = 0.05
    skip_rate_limit_seconds: float = 1.0
    mute_poll_interval_seconds: float = 0.1
    prompt_timeout_seconds: float = 5.0
    notification_duration_seconds: float = 2.0

    # Native ad watcher
    native_ad_check_interval_seconds: float = 5.0
    native_ad_debounce_seconds: float = 0.5

    # Player / navigation
    video_poll_interval_seconds: float = 0.5
    video_wait_timeout_seconds: float = 15.0
    location_poll_interval_seconds: float = 1.0

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    class Config:
        env_file = ".env"
        env_prefix = "SEGSKIP_"


settings = Settings()
