from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Cal.com
    cal_api_key: str = ""
    cal_api_url: str = "https://api.cal.com"
    cal_api_version: str = "2023-12-25"
    cal_event_type_id: str = ""
    cal_username: str = ""
    cal_booking_duration: int = 15

    # Vapi
    vapi_api_key: str = ""
    vapi_public_key: str = ""
    vapi_api_url: str = "https://api.vapi.ai"
    vapi_assistant_id: str = ""
    vapi_phone_number_id: str = ""
    vapi_webhook_url: str = ""
    vapi_forward_function_results: bool = False

    # Booking
    time_zone: str = "UTC"
    default_duration: int = 30
    max_alternative_slots: int = 5
    date_repair_enabled: bool = True

    # App
    log_level: str = "INFO"
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
