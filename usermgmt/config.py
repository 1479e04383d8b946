from pydantic_settings import BaseSettings, SettingsConfigDict

from usermgmt.constants import DEFAULT_DIGEST, DEFAULT_SCHEME, USERS_API_URL

class Settings(BaseSettings):
    PRIVATE_KEY: str = ""
    USERS_API_URL: str = USERS_API_URL
    KEY_SCHEME: str = DEFAULT_SCHEME
    KEY_DIGEST: str = DEFAULT_DIGEST
    REQUEST_TIMEOUT: float = 10.0

    model_config = SettingsConfigDict(env_file=".env")
