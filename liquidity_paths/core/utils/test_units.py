from decimal import Decimal

import pytest

from liquidity_paths.core.errors import ValidationError
from liquidity_paths.core.utils.units import (
    deadline,
    from_erc20_raw,
    parse_display_liquidity,
    scale_by_percentage,
    slippage_min,
    to_erc20_raw,
    validate_percentage,
)


class TestRawConversion:
    def test_to_raw(self):
        assert to_erc20_raw("1.5", 6) == 1_500_000
        assert to_erc20_raw(2, 18) == 2 * 10**18
        assert to_erc20_raw(Decimal("0.1"), 18) == 10**17

    def test_to_raw_truncates(self):
        assert to_erc20_raw("0.0000019", 6) == 1

    def test_to_raw_rejects(self):
        with pytest.raises(ValidationError):
            to_erc20_raw("-1", 6)
        with pytest.raises(ValidationError):
            to_erc20_raw("abc", 6)

    def test_from_raw(self):
        assert from_erc20_raw(1_500_000, 6) == 1.5


class TestPercentages:
    def test_slippage_min(self):
        assert slippage_min(1000, 0.5) == 995
        assert slippage_min(1000, 0) == 1000
        assert slippage_min(1000, 100) == 0

    def test_slippage_floors_basis_points(self):
        assert slippage_min(10_000, 0.555) == 9945

    @pytest.mark.parametrize("bad", [-0.1, 100.1, float("nan"), "x"])
    def test_validate_percentage_rejects(self, bad):
        with pytest.raises(ValidationError):
            validate_percentage(bad)

    def test_display_liquidity_at_half(self):
        total = parse_display_liquidity("123456789 liquidity")
        assert total == 123456789
        assert scale_by_percentage(total, 50) == 61728394

    def test_scale_rounds_basis_points(self):
        assert scale_by_percentage(10_000, 33.336) == 3334
        assert scale_by_percentage(10_000, 100) == 10_000

    def test_scale_rounds_half_up(self):
        assert scale_by_percentage(10_000, 0.125) == 13
        assert scale_by_percentage(10_000, 33.335) == 3334
        assert scale_by_percentage(10_000, 0.005) == 1

    def test_display_liquidity_passthrough_and_errors(self):
        assert parse_display_liquidity(42) == 42
        with pytest.raises(ValidationError):
            parse_display_liquidity("no liquidity")


def test_deadline_is_twenty_minutes_out():
    assert deadline(now=1000.7) == 2200
    assert deadline(60, now=1000) == 1060
