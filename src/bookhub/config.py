# ABOUTME: Runtime configuration for a BookHub process: storage paths, page size, pricing.
# ABOUTME: Defaults live in module constants; the CLI overrides them via options and env vars.

from dataclasses import dataclass, field
from pathlib import Path

from bookhub.cart import PricingRules

DEFAULT_HOME = Path.home() / ".bookhub"
DEFAULT_DB_PATH = DEFAULT_HOME / "bookhub.db"
DEFAULT_SESSION_PATH = DEFAULT_HOME / "session.json"
DEFAULT_PAGE_SIZE = 12


@dataclass
class ShopConfig:
    """Everything the composition root needs to build the services."""

    db_path: Path = DEFAULT_DB_PATH
    session_path: Path = DEFAULT_SESSION_PATH
    page_size: int = DEFAULT_PAGE_SIZE
    pricing: PricingRules = field(default_factory=PricingRules)

    def __post_init__(self) -> None:
        if self.page_size < 1:
            msg = f"page_size must be at least 1, got {self.page_size}"
            raise ValueError(msg)
