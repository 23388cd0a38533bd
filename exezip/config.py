"""Configuration models with Pydantic validation."""

import json
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

APP_TAG_SIZE = 8
UINT16_MAX = 0xFFFF


class ContainerFormat(BaseModel):
    """Magic tag and version stamped into every container trailer."""

    model_config = ConfigDict(frozen=True)

    app_tag: str = Field(..., description="ASCII application tag, at most 8 bytes")
    major: int = Field(default=0, ge=0, le=UINT16_MAX, description="Major version")
    minor: int = Field(default=0, ge=0, le=UINT16_MAX, description="Minor version")
    revision: int = Field(default=0, ge=0, le=UINT16_MAX, description="Revision")

    @field_validator("app_tag")
    @classmethod
    def validate_app_tag(cls, v: str) -> str:
        """Validate the tag fits the fixed-width trailer field."""
        if not v or not v.isascii():
            raise ValueError("app_tag must be a non-empty ASCII string")
        if "\x00" in v:
            raise ValueError("app_tag must not contain NUL characters")
        if len(v) > APP_TAG_SIZE:
            raise ValueError(f"app_tag must be at most {APP_TAG_SIZE} bytes")
        return v

    @property
    def version(self) -> str:
        """Version string such as ``exezip-0.1.0``."""
        return f"{self.app_tag}-{self.major}.{self.minor}.{self.revision}"


DEFAULT_FORMAT = ContainerFormat(app_tag="exezip", major=0, minor=1, revision=0)


class BuildSettings(BaseModel):
    """Settings for a single container build."""

    exe_path: Path = Field(..., description="Executable file to embed into")
    zip_paths: List[Path] = Field(
        ..., min_length=1, description="Files or directories to embed"
    )
    out_path: Path = Field(default=Path("out"), description="Output container path")
    namespace: Optional[str] = Field(
        default=None,
        description="Top-level archive segment (defaults to the format tag)",
    )
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("namespace")
    @classmethod
    def validate_namespace(cls, v: Optional[str]) -> Optional[str]:
        """Validate the namespace is one plain path segment."""
        if v is None:
            return v
        if not v or "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError("namespace must be a single non-empty path segment")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v.upper()

    @classmethod
    def from_json(cls, config_path: Union[str, Path]) -> "BuildSettings":
        """Load build settings from a JSON file."""
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with config_path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {e}")

        return cls.model_validate(data)

    def to_json(self, config_path: Union[str, Path], indent: int = 2) -> None:
        """Save build settings to a JSON file."""
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with config_path.open("w", encoding="utf-8") as f:
            json.dump(self.model_dump(), f, indent=indent, default=str)
