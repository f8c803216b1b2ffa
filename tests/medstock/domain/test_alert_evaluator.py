"""Tests for status derivation and alert cooldowns."""

from datetime import UTC, date, datetime, timedelta

from medstock.lot.alerts import LotStatus, alert_due, evaluate

TODAY = date(2026, 3, 1)


def _evaluate(quantity=50, available=None, expiry_date=None, threshold=10, alert_days=30):
    return evaluate(
        quantity,
        quantity if available is None else available,
        expiry_date or TODAY + timedelta(days=365),
        threshold,
        alert_days,
        today=TODAY,
    )


class TestStatusDerivation:
    def test_healthy_lot_is_active(self):
        result = _evaluate()
        assert result.status == LotStatus.ACTIVE.value
        assert not result.low_stock
        assert not result.expiring_soon
        assert not result.expired

    def test_available_at_threshold_is_low_stock(self):
        result = _evaluate(quantity=10)
        assert result.status == LotStatus.LOW_STOCK.value
        assert result.low_stock

    def test_low_stock_uses_available_not_on_hand(self):
        result = _evaluate(quantity=100, available=5)
        assert result.status == LotStatus.LOW_STOCK.value

    def test_zero_on_hand_is_out_of_stock(self):
        result = _evaluate(quantity=0)
        assert result.status == LotStatus.OUT_OF_STOCK.value
        assert result.low_stock

    def test_fully_reserved_lot_is_low_stock_not_out_of_stock(self):
        result = _evaluate(quantity=20, available=0)
        assert result.status == LotStatus.LOW_STOCK.value

    def test_past_expiry_is_expired_regardless_of_quantity(self):
        result = _evaluate(quantity=500, expiry_date=TODAY - timedelta(days=1))
        assert result.status == LotStatus.EXPIRED.value
        assert result.expired
        assert not result.low_stock

    def test_expired_takes_precedence_over_out_of_stock(self):
        result = _evaluate(quantity=0, expiry_date=TODAY - timedelta(days=3))
        assert result.status == LotStatus.EXPIRED.value

    def test_expiry_day_itself_is_not_expired(self):
        result = _evaluate(expiry_date=TODAY)
        assert result.status == LotStatus.ACTIVE.value
        assert result.expiring_soon


class TestExpiryWindow:
    def test_inside_window_is_expiring_soon(self):
        assert _evaluate(expiry_date=TODAY + timedelta(days=30)).expiring_soon

    def test_outside_window_is_not_expiring(self):
        assert not _evaluate(expiry_date=TODAY + timedelta(days=31)).expiring_soon

    def test_zero_day_window_only_flags_today(self):
        assert _evaluate(expiry_date=TODAY, alert_days=0).expiring_soon
        assert not _evaluate(expiry_date=TODAY + timedelta(days=1), alert_days=0).expiring_soon

    def test_defaults_to_current_date(self):
        result = evaluate(10, 10, datetime.now(UTC).date() - timedelta(days=1), 0, 0)
        assert result.expired


class TestAlertCooldown:
    def test_first_alert_is_always_due(self):
        assert alert_due(None, datetime.now(UTC), timedelta(hours=24))

    def test_alert_within_cooldown_is_suppressed(self):
        now = datetime.now(UTC)
        assert not alert_due(now - timedelta(hours=3), now, timedelta(hours=24))

    def test_alert_after_cooldown_is_due(self):
        now = datetime.now(UTC)
        assert alert_due(now - timedelta(hours=25), now, timedelta(hours=24))

    def test_naive_timestamps_are_treated_as_utc(self):
        now = datetime.now(UTC)
        last = (now - timedelta(hours=1)).replace(tzinfo=None)
        assert not alert_due(last, now, timedelta(hours=24))
