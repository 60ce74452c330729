from decimal import Decimal

import pytest

from formula_workbench.services.scaling import RoundingMode, RoundingPolicy, round_quantity, scale_quantity

STEPS = (0.01, 0.1, 1.0)


def test_half_up_rounds_halfway_away_from_zero():
    assert round_quantity(0.125, 0.01, RoundingMode.HALF_UP) == 0.13
    assert round_quantity(2.45, 0.1, RoundingMode.HALF_UP) == 2.5


def test_bankers_rounds_halfway_to_even_step_index():
    assert round_quantity(0.125, 0.01, RoundingMode.BANKERS) == 0.12
    assert round_quantity(0.135, 0.01, RoundingMode.BANKERS) == 0.14


def test_down_floors_to_step():
    assert round_quantity(0.129, 0.01, RoundingMode.DOWN) == 0.12
    assert round_quantity(7.99, 1.0, RoundingMode.DOWN) == 7.0


def test_mode_accepts_legacy_spellings():
    assert round_quantity(0.125, 0.01, "half_even") == 0.12
    assert round_quantity(0.129, 0.01, "floor") == 0.12


def test_no_step_returns_value_unchanged():
    assert round_quantity(33.3333333, None, RoundingMode.HALF_UP) == 33.3333333


def test_non_positive_step_is_rejected():
    with pytest.raises(ValueError):
        round_quantity(1.0, 0, RoundingMode.HALF_UP)
    with pytest.raises(ValueError):
        RoundingPolicy(step=-0.1)


def test_scaled_quantity_is_exact_at_halfway_points():
    assert scale_quantity(3, 0.15) == Decimal("0.45")
    assert round_quantity(scale_quantity(3, 0.15), 0.1, RoundingMode.HALF_UP) == 0.5
    assert round_quantity(scale_quantity(0.25, 0.5), 0.01, RoundingMode.BANKERS) == 0.12


@pytest.mark.parametrize("step", STEPS)
@pytest.mark.parametrize("mode", list(RoundingMode))
@pytest.mark.parametrize("value", [0.0, 1.005, 12.34, 66.666666, 99.95])
def test_rounding_is_idempotent(step, mode, value):
    once = round_quantity(value, step, mode)
    assert round_quantity(once, step, mode) == once


@pytest.mark.parametrize("step", STEPS)
@pytest.mark.parametrize("quantity,factor", [(3, 0.15), (17, 0.15), (60, 4 / 3), (0.25, 0.5)])
def test_rounding_scaled_values_is_idempotent(step, quantity, factor):
    once = round_quantity(scale_quantity(quantity, factor), step, RoundingMode.HALF_UP)
    assert round_quantity(once, step, RoundingMode.HALF_UP) == once


@pytest.mark.parametrize("step", STEPS)
def test_bankers_lands_on_even_step_index_at_halfway(step):
    step_dec = Decimal(str(step))
    assert round_quantity(float(step_dec * Decimal("2.5")), step, RoundingMode.BANKERS) == float(step_dec * 2)
    assert round_quantity(float(step_dec * Decimal("3.5")), step, RoundingMode.BANKERS) == float(step_dec * 4)
    assert round_quantity(float(step_dec * Decimal("2.5")), step, RoundingMode.HALF_UP) == float(step_dec * 3)
