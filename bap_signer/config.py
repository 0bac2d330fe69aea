import os
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import ValidationError, field_validator

from bap_signer.exceptions import validate_subscriber_id


class Settings(BaseSettings):
    # Key material location (private_key.pem, public_key.pem, public_key.b64)
    BAP_KEY_DIR: str = "keys"

    # Subscriber identity, used as keyId in the Authorization header
    BAP_ID: str = "bap.beckn-production.up.railway.app"
    BAP_URI: str = "https://beckn-production.up.railway.app"

    # Beckn gateway
    # staging: "https://staging.gateway.becknprotocol.io"
    BECKN_GATEWAY_URL: str = "https://gateway.becknprotocol.io"
    BECKN_REQUEST_TIMEOUT: float = 30.0

    LOG_LEVEL: str = "INFO"

    # Load env based on MODE: dev->env.dev (default), main->env.main, else env
    _mode = os.getenv("MODE") or os.getenv("ENV_MODE") or "dev"
    _env_file = "env.dev" if _mode == "dev" else "env.main" if _mode == "main" else "env"
    model_config = SettingsConfigDict(env_file=_env_file, case_sensitive=True, extra="ignore")

    @field_validator("BAP_ID")
    @classmethod
    def _check_bap_id(cls, value: str) -> str:
        return validate_subscriber_id(value)

    @field_validator("BECKN_GATEWAY_URL")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


def _load_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as e:
        missing = [err['loc'][0] for err in e.errors() if err.get('type') == 'missing']
        if missing:
            hint_lines = [
                "Missing required BAP signer environment variables:",
                *[f"  - {name}" for name in missing]
            ]
            raise RuntimeError("\n".join(hint_lines)) from e
        raise

settings = _load_settings()
