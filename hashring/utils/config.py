import os
from dataclasses import dataclass
from enum import Enum
import yaml

from ..core.hashing import HashAlgorithm, ring_slots


class DuplicatePolicy(Enum):
    """What adding a server name that is already on the ring does"""

    ALLOW = "allow"  # place another R positions for the same name
    IGNORE = "ignore"  # no-op
    REJECT = "reject"  # raise DuplicateServerError


@dataclass
class RingConfig:
    """Configuration for a consistent hashing ring"""

    ring_id: str = "ring"

    # Placement
    positions_per_server: int = 5
    salt_stride: int = 217  # added to the salt after every placement attempt
    max_placement_attempts: int = 10000
    hash_algorithm: str = HashAlgorithm.SIP13.value

    duplicate_policy: str = DuplicatePolicy.ALLOW.value

    # General settings
    log_level: str = "INFO"
    log_dir: str | None = None

    @classmethod
    def from_env(cls) -> "RingConfig":
        """Load configuration from environment variables"""
        return cls(
            ring_id=os.getenv("RING_ID", "ring"),
            positions_per_server=int(os.getenv("RING_POSITIONS_PER_SERVER", "5")),
            salt_stride=int(os.getenv("RING_SALT_STRIDE", "217")),
            max_placement_attempts=int(
                os.getenv("RING_MAX_PLACEMENT_ATTEMPTS", "10000")
            ),
            hash_algorithm=os.getenv(
                "RING_HASH_ALGORITHM", HashAlgorithm.SIP13.value
            ).lower(),
            duplicate_policy=os.getenv("RING_DUPLICATE_POLICY", "allow").lower(),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_dir=os.getenv("LOG_DIR") or None,
        )

    @classmethod
    def from_file(cls, filepath: str) -> "RingConfig":
        """Load configuration from YAML file"""
        with open(filepath, "r") as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @property
    def algorithm(self) -> HashAlgorithm:
        return HashAlgorithm(self.hash_algorithm)

    @property
    def policy(self) -> DuplicatePolicy:
        return DuplicatePolicy(self.duplicate_policy)

    def validate(self) -> None:
        """Validate configuration parameters"""
        if self.hash_algorithm not in [a.value for a in HashAlgorithm]:
            raise ValueError(f"Invalid hash algorithm: {self.hash_algorithm}")

        if self.positions_per_server < 1:
            raise ValueError("positions_per_server must be at least 1")

        if self.positions_per_server > ring_slots(self.algorithm):
            raise ValueError(
                f"positions_per_server cannot exceed the ring size: "
                f"{self.positions_per_server}"
            )

        if self.salt_stride < 1:
            raise ValueError("salt_stride must be at least 1")

        if self.max_placement_attempts < self.positions_per_server:
            raise ValueError(
                "max_placement_attempts must be at least positions_per_server"
            )

        if self.duplicate_policy not in [p.value for p in DuplicatePolicy]:
            raise ValueError(f"Invalid duplicate policy: {self.duplicate_policy}")


# Global config instance
_config: RingConfig | None = None


def get_config() -> RingConfig:
    """Get the global configuration instance"""
    global _config
    if _config is None:
        _config = RingConfig.from_env()
        _config.validate()
    return _config


def set_config(config: RingConfig | None) -> None:
    """Set the global configuration instance (useful for testing)"""
    global _config
    if config is not None:
        config.validate()
    _config = config
