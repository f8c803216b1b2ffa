"""Engine tunables read from the ``[custom]`` table of domain.toml."""

from protean.utils.globals import current_domain

DEFAULTS = {
    "low_stock_alert_cooldown_hours": 24,
    "expiry_alert_cooldown_hours": 24,
    "lot_lock_timeout_seconds": 5,
    "publish_timeout_seconds": 2,
    "catalog_timeout_seconds": 1,
    "event_retry_attempts": 3,
    "event_retry_base_delay_seconds": 0.2,
    "default_low_stock_threshold": 10,
    "default_expiry_alert_days": 30,
}


def get_setting(name: str):
    """Return a configured tunable for the active domain, or its default."""
    if name not in DEFAULTS:
        raise KeyError(f"Unknown setting: {name}")

    custom = current_domain.config.get("custom") or {}
    return custom.get(name, DEFAULTS[name])
