"""Settings for the tags service."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    exiftool_path: str = Field("exiftool", validation_alias="EXIFTOOL_PATH")
    # Bytes requested from exiftool stdout per read; the XML parser is fed chunk by chunk.
    read_chunk_size: int = Field(65536, validation_alias="READ_CHUNK_SIZE")

    host: str = Field("0.0.0.0", validation_alias="HOST")
    port: int = Field(8080, validation_alias="PORT")
