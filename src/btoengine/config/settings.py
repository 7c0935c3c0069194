import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from btoengine.domain.eligibility import EligibilityPolicy
from btoengine.domain.enums import FlatType

STORAGE_BACKENDS = ("csv", "sqlite", "memory")


@dataclass
class StorageFiles:
    """CSV snapshot file names, relative to the data directory."""
    applicants: str = "ApplicantList.csv"
    officers: str = "HDBOfficerList.csv"
    managers: str = "HDBManagerList.csv"
    projects: str = "BTOProjectList.csv"
    visibility: str = "BTOProjectVisibilityList.csv"
    applications: str = "BTOApplicationList.csv"
    registrations: str = "HDBOfficerRegistrationList.csv"
    enquiries: str = "EnquiryList.csv"
    withdrawals: str = "WithdrawalRequestList.csv"


@dataclass
class StorageConfig:
    """Storage configuration"""
    backend: str = "csv"
    data_dir: str = "./data"
    db_url: str = ""
    files: StorageFiles = field(default_factory=StorageFiles)


@dataclass
class PolicyConfig:
    """Eligibility and administration limits"""
    single_min_age: int = 35
    married_min_age: int = 21
    max_officer_slots: int = 10
    single_flat_types: List[str] = field(default_factory=lambda: [FlatType.TWO_ROOM.value])

    def to_policy(self) -> EligibilityPolicy:
        return EligibilityPolicy(
            single_min_age=self.single_min_age,
            married_min_age=self.married_min_age,
            single_flat_types=frozenset(FlatType.parse(ft, field="single_flat_types") for ft in self.single_flat_types),
        )


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    file: Optional[str] = None
    max_size: int = 10485760  # 10MB
    backup_count: int = 5
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class Settings:
    """Main settings"""
    storage: StorageConfig = field(default_factory=StorageConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load_from_file(cls, config_path: Optional[str] = None) -> 'Settings':
        """Load settings from a YAML file; defaults when the file is missing."""
        if config_path is None:
            config_path = Path(__file__).parent / "config.yaml"

        config_path = Path(config_path)

        if not config_path.exists():
            return cls()

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, config_data: Dict[str, Any]) -> 'Settings':
        settings = cls()

        if 'storage' in config_data:
            storage = dict(config_data['storage'] or {})
            files = StorageFiles(**(storage.pop('files', None) or {}))
            settings.storage = StorageConfig(files=files, **storage)

        if 'policy' in config_data:
            settings.policy = PolicyConfig(**(config_data['policy'] or {}))

        if 'logging' in config_data:
            settings.logging = LoggingConfig(**(config_data['logging'] or {}))

        return settings

    def load_environment_variables(self):
        """Apply BTO_* environment overrides."""
        data_dir = os.getenv('BTO_DATA_DIR')
        if data_dir:
            self.storage.data_dir = data_dir
        backend = os.getenv('BTO_STORAGE_BACKEND')
        if backend:
            self.storage.backend = backend.lower()
        db_url = os.getenv('BTO_DB_URL')
        if db_url:
            self.storage.db_url = db_url
        log_level = os.getenv('BTO_LOG_LEVEL')
        if log_level:
            self.logging.level = log_level.upper()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'storage': asdict(self.storage),
            'policy': asdict(self.policy),
            'logging': asdict(self.logging),
        }


def create_settings(config_path: Optional[str] = None) -> Settings:
    """Validated file settings with environment overrides applied."""
    from .validated_settings import load_validated_settings

    settings = load_validated_settings(config_path)
    settings.load_environment_variables()
    return settings
