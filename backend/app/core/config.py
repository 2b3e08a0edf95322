from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Crypto Chat"
    debug: bool = False

    # Paths
    data_dir: Path = Path(__file__).resolve().parent.parent.parent / "data"

    # LLM
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    agent_max_iterations: int = 10

    # CoinGecko
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    coingecko_api_key: str = ""
    coingecko_timeout: float = 10.0

    # Upstash Redis (REST)
    upstash_redis_rest_url: str = ""
    upstash_redis_rest_token: str = ""

    # Client sync
    client_api_base_url: str = "http://localhost:8000"
    save_debounce_seconds: float = 0.5

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["*"]

    model_config = {
        "env_file": str(Path(__file__).resolve().parent.parent.parent / ".env"),
        "env_prefix": "CRYPTO_CHAT_",
    }


settings = Settings()
