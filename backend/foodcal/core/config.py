from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

# Value shipped in the sample .env; treated the same as an empty key
PLACEHOLDER_API_KEY = "YOUR_BAILIAN_API_KEY"


class Settings(BaseSettings):
    """
    Central settings object.
    Deployments provide env vars; locally you can use backend/.env.
    """
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Upstream (OpenAI-compatible chat completions)
    BAILIAN_API_KEY: str = ""
    BAILIAN_API_BASE_URL: str = "https://dashscope.aliyuncs.com/compatible-mode/v1"
    VISION_MODEL_NAME: str = "qwen-vl-max-latest"
    INFERENCE_MODEL_NAME: str = "qwen-turbo"

    # "fielded" = one "name，weight" per line, "simple" = comma separated names
    IDENTIFY_MODE: Literal["fielded", "simple"] = "fielded"

    REQUEST_TIMEOUT_SECONDS: float = 60.0
    MAX_BODY_BYTES: int = 10 * 1024 * 1024

    LOG_LEVEL: str = "INFO"

    # Versioning
    APP_VERSION: str = "0.1.0"
    BUILD_ID: str = "dev"

    @property
    def api_key_configured(self) -> bool:
        key = (self.BAILIAN_API_KEY or "").strip()
        return bool(key) and key != PLACEHOLDER_API_KEY

    @property
    def chat_completions_url(self) -> str:
        return f"{self.BAILIAN_API_BASE_URL.rstrip('/')}/chat/completions"


# App-wide instance; request handlers get it through get_settings()
settings = Settings()


def get_settings() -> Settings:
    return settings
