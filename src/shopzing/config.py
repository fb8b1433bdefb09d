"""Runtime settings for shopzing."""

import os
from dataclasses import dataclass, field
from pathlib import Path

# Can be overridden via SHOPZING_DATA_DIR environment variable
DEFAULT_DATA_DIR = Path(__file__).parent.parent.parent / "data"

DEFAULT_CORS_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
    "http://127.0.0.1:3000",
]


def _split_origins(value: str) -> list[str]:
    return [origin.strip() for origin in value.split(",") if origin.strip()]


@dataclass
class Settings:
    """Process-wide settings, built once at startup."""

    data_dir: Path = DEFAULT_DATA_DIR
    # Simulated payment wait and the upper bound a checkout may spend on it
    payment_delay: float = 2.0
    payment_timeout: float = 10.0
    log_level: str = "INFO"
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))

    @classmethod
    def from_env(cls) -> "Settings":
        """Read SHOPZING_* environment variables, falling back to defaults."""
        env = os.environ
        cors = env.get("SHOPZING_CORS_ORIGINS")
        return cls(
            data_dir=Path(env.get("SHOPZING_DATA_DIR", str(DEFAULT_DATA_DIR))),
            payment_delay=float(env.get("SHOPZING_PAYMENT_DELAY", "2.0")),
            payment_timeout=float(env.get("SHOPZING_PAYMENT_TIMEOUT", "10.0")),
            log_level=env.get("SHOPZING_LOG_LEVEL", "INFO").upper(),
            cors_origins=_split_origins(cors) if cors else list(DEFAULT_CORS_ORIGINS),
        )
