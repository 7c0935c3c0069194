"""
Pydantic validation for settings files.

SettingsModel ignores unknown keys and converts into the dataclass Settings.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from btoengine.core.errors import ValidationError as RecordValidationError
from btoengine.domain.enums import FlatType

from .settings import (
    LoggingConfig,
    PolicyConfig,
    Settings,
    StorageConfig,
    StorageFiles,
)


class StorageFilesModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    applicants: str = "ApplicantList.csv"
    officers: str = "HDBOfficerList.csv"
    managers: str = "HDBManagerList.csv"
    projects: str = "BTOProjectList.csv"
    visibility: str = "BTOProjectVisibilityList.csv"
    applications: str = "BTOApplicationList.csv"
    registrations: str = "HDBOfficerRegistrationList.csv"
    enquiries: str = "EnquiryList.csv"
    withdrawals: str = "WithdrawalRequestList.csv"


class StorageConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    backend: Literal["csv", "sqlite", "memory"] = "csv"
    data_dir: str = "./data"
    db_url: str = ""
    files: StorageFilesModel = StorageFilesModel()

    @field_validator("backend", mode="before")
    @classmethod
    def _lower_backend(cls, v):
        return v.lower() if isinstance(v, str) else v


class PolicyConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    single_min_age: int = Field(default=35, ge=0)
    married_min_age: int = Field(default=21, ge=0)
    max_officer_slots: int = Field(default=10, ge=0)
    single_flat_types: List[str] = Field(default_factory=lambda: [FlatType.TWO_ROOM.value])

    @field_validator("single_flat_types")
    @classmethod
    def _known_flat_types(cls, v: List[str]) -> List[str]:
        # surfaced by pydantic as a field error
        try:
            return [FlatType.parse(ft, field="single_flat_types").value for ft in v]
        except RecordValidationError as e:
            raise ValueError(str(e)) from e


class LoggingConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file: Optional[str] = None
    max_size: int = Field(default=10485760, gt=0)
    backup_count: int = Field(default=5, ge=0)
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, v):
        return v.upper() if isinstance(v, str) else v


class SettingsModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    storage: StorageConfigModel = StorageConfigModel()
    policy: PolicyConfigModel = PolicyConfigModel()
    logging: LoggingConfigModel = LoggingConfigModel()

    def to_dataclass(self) -> Settings:
        s = Settings()
        storage = self.storage.model_dump()
        files = StorageFiles(**storage.pop("files"))
        s.storage = StorageConfig(files=files, **storage)
        s.policy = PolicyConfig(**self.policy.model_dump())
        s.logging = LoggingConfig(**self.logging.model_dump())
        return s


def load_validated_settings(config_path: Optional[str] = None) -> Settings:
    """Validate the YAML file with pydantic and return the Settings dataclass."""
    cfg_file = Path(config_path) if config_path else Path(__file__).parent / "config.yaml"
    data = {}
    if cfg_file.exists():
        data = yaml.safe_load(cfg_file.read_text(encoding="utf-8")) or {}
    model = SettingsModel(**data)
    return model.to_dataclass()
