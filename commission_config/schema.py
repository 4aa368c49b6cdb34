"""
CommissionSettings schema.

The human-authored settings file is parsed into these frozen dataclasses by
the loader.  Each section validates itself in ``__post_init__`` so a bad
file fails at load time, not at the first approval.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

# ---------------------------------------------------------------------------
# Pay run
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PayRunSettings:
    """Weekly cutoff (Python weekday numbering, Monday=0)."""

    cutoff_weekday: int = 1
    cutoff_hour: int = 15
    cutoff_minute: int = 0
    utc_offset_hours: int = -7

    def __post_init__(self) -> None:
        if not 0 <= self.cutoff_weekday <= 6:
            raise ValueError(f"pay_run.cutoff_weekday must be 0-6, got {self.cutoff_weekday}")
        if not 0 <= self.cutoff_hour <= 23:
            raise ValueError(f"pay_run.cutoff_hour must be 0-23, got {self.cutoff_hour}")
        if not 0 <= self.cutoff_minute <= 59:
            raise ValueError(f"pay_run.cutoff_minute must be 0-59, got {self.cutoff_minute}")
        if not -14 <= self.utc_offset_hours <= 14:
            raise ValueError(f"pay_run.utc_offset_hours out of range: {self.utc_offset_hours}")


# ---------------------------------------------------------------------------
# Override phase and draws
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OverrideSettings:
    limit: int = 10
    rate: Decimal = Decimal("0.10")

    def __post_init__(self) -> None:
        if self.limit < 0:
            raise ValueError("override.limit cannot be negative")
        if not Decimal("0") <= self.rate <= Decimal("1"):
            raise ValueError(f"override.rate must be between 0 and 1, got {self.rate}")


@dataclass(frozen=True)
class DrawSettings:
    small_draw_limit: Decimal = Decimal("1500")
    max_outstanding: Decimal = Decimal("4000")
    estimate_ratio: Decimal = Decimal("0.5")

    def __post_init__(self) -> None:
        if self.small_draw_limit <= 0:
            raise ValueError("draws.small_draw_limit must be positive")
        if self.max_outstanding < self.small_draw_limit:
            raise ValueError("draws.max_outstanding must be at least small_draw_limit")
        if not Decimal("0") < self.estimate_ratio <= Decimal("1"):
            raise ValueError("draws.estimate_ratio must be in (0, 1]")


# ---------------------------------------------------------------------------
# Profit split options
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProfitSplitSettings:
    op_percent_options: tuple[Decimal, ...] = (Decimal("0.10"), Decimal("0.125"), Decimal("0.15"))
    rep_percent_options: tuple[Decimal, ...] = (
        Decimal("0.35"),
        Decimal("0.40"),
        Decimal("0.45"),
        Decimal("0.50"),
    )

    def __post_init__(self) -> None:
        for value in self.op_percent_options + self.rep_percent_options:
            if not Decimal("0") <= value <= Decimal("1"):
                raise ValueError(f"profit split option out of range: {value}")
        if not self.op_percent_options or not self.rep_percent_options:
            raise ValueError("profit split option lists cannot be empty")


# ---------------------------------------------------------------------------
# Outbox relay
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OutboxSettings:
    max_attempts: int = 5
    base_delay_seconds: int = 30
    max_delay_seconds: int = 3600
    batch_size: int = 100

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("outbox.max_attempts must be at least 1")
        if self.base_delay_seconds < 0 or self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("outbox delays must satisfy 0 <= base <= max")
        if self.batch_size < 1:
            raise ValueError("outbox.batch_size must be at least 1")


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CommissionSettings:
    """Everything the workflow reads from configuration."""

    settings_id: str
    version: int
    pay_run: PayRunSettings = field(default_factory=PayRunSettings)
    override: OverrideSettings = field(default_factory=OverrideSettings)
    draws: DrawSettings = field(default_factory=DrawSettings)
    profit_split: ProfitSplitSettings = field(default_factory=ProfitSplitSettings)
    outbox: OutboxSettings = field(default_factory=OutboxSettings)
    # role -> capability names
    role_capabilities: tuple[tuple[str, tuple[str, ...]], ...] = ()
    manager_submitter_roles: tuple[str, ...] = ("manager", "sales_manager")
    checksum: str = ""

    def __post_init__(self) -> None:
        if not self.settings_id:
            raise ValueError("settings_id is required")
        roles = [role for role, _ in self.role_capabilities]
        if len(roles) != len(set(roles)):
            raise ValueError("role_capabilities lists a role twice")
        unknown = set(self.manager_submitter_roles) - set(roles)
        if roles and unknown:
            raise ValueError(f"manager_submitter_roles not in role_capabilities: {sorted(unknown)}")

    def capabilities_for(self, role: str) -> tuple[str, ...]:
        for name, capabilities in self.role_capabilities:
            if name == role:
                return capabilities
        return ()
