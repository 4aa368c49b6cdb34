"""
Config -> Engine Bridges.

Functions that turn ``CommissionSettings`` sections into the parameter
objects the pure engines take.  They live here (the producer) because the
engines and the kernel never import ``commission_config``.

Usage:
    from commission_config.bridges import build_draw_limits, build_pay_run_cutoff

    settings = get_active_settings()
    cutoff = build_pay_run_cutoff(settings)
"""

from __future__ import annotations

from commission_config.schema import CommissionSettings
from commission_engines.draws import DrawLimits
from commission_engines.overrides import OverridePolicy
from commission_engines.pay_run import PayRunCutoff


def build_pay_run_cutoff(settings: CommissionSettings) -> PayRunCutoff:
    section = settings.pay_run
    return PayRunCutoff(
        weekday=section.cutoff_weekday,
        hour=section.cutoff_hour,
        minute=section.cutoff_minute,
        utc_offset_hours=section.utc_offset_hours,
    )


def build_draw_limits(settings: CommissionSettings) -> DrawLimits:
    section = settings.draws
    return DrawLimits(
        small_draw_limit=section.small_draw_limit,
        max_outstanding=section.max_outstanding,
        estimate_ratio=section.estimate_ratio,
    )


def build_override_policy(settings: CommissionSettings) -> OverridePolicy:
    return OverridePolicy(limit=settings.override.limit, rate=settings.override.rate)
