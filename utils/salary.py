# utils/salary.py
"""
Pay-rate derivation from annual CTC (cost to company).

Follows the payroll formula: a fixed Basic per experience tier, HRA as a
share of Basic, a fixed conveyance, and whatever is left of the fixed
monthly CTC as balance allowance. Deductions are employee PF and
professional tax.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_FLOOR
from typing import Optional, Union

Number = Union[int, float, Decimal, str]

BASIC_SALARY_BY_TIER = {
    "E1": 12000,
    "E2": 12000,
    "M1": 13500,
    "M2": 14500,
    "M3": 15500,
    "L1": 18500,
    "L2": 23000,
    "L3": 29000,
    "S1": 35000,
}
DEFAULT_TIER = "E1"

CONVEYANCE_ALLOWANCE = 1600   # monthly
PROFESSIONAL_TAX = 200        # monthly
VARIABLE_CTC = 50000
PF_RATE = Decimal("0.12")
HRA_THRESHOLD = 13000
MONTHS = 12
WORKING_HOURS_PER_MONTH = 176  # 8h x 22 days

MAX_CTC = Decimal("999999999999999.99")
MAX_HOURLY_RATE = 1000000


@dataclass(frozen=True)
class SalaryBreakdown:
    basic: int
    hra: int
    conveyance: int
    balance_allowance: int
    gross: int
    pf: int
    professional_tax: int
    total_deductions: int
    net_salary: int
    annual_net: int
    hourly_rate: float

    @property
    def has_negative_balance(self) -> bool:
        """CTC too low for the tier's fixed components; a data-quality signal."""
        return self.balance_allowance < 0


def _dec(value: Number) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def round_half_up(value: Number, places: int = 0) -> Decimal:
    # floor(x + 0.5) so negative halves round toward +inf, same as the dashboard
    step = Decimal(1).scaleb(-places)
    return ((_dec(value) / step + Decimal("0.5")).to_integral_value(rounding=ROUND_FLOOR)) * step


def basic_for_tier(tier: Optional[str]) -> int:
    """Unknown or missing tiers fall back to the lowest tier."""
    key = (tier or "").strip().upper()
    return BASIC_SALARY_BY_TIER.get(key, BASIC_SALARY_BY_TIER[DEFAULT_TIER])


def derive_salary(annual_ctc: Number, experience_tier: Optional[str],
                  variable_ctc: Number = VARIABLE_CTC) -> SalaryBreakdown:
    """Monthly salary components for an annual CTC and experience tier.

    The hourly rate is the *rounded* monthly gross over 176 hours, rounded to
    paise, so it always equals ``round(gross / 176, 2)`` for the reported
    gross. Dividing the unrounded gross first can differ by 0.01 (600000 on
    E1 gives 260.42 that way, 260.41 here).
    """
    basic =Decimal(basic_for_tier(experience_tier))
    conveyance = Decimal(CONVEYANCE_ALLOWANCE)
    pt = Decimal(PROFESSIONAL_TAX)

    fixed_monthly = (_dec(annual_ctc) - _dec(variable_ctc)) / MONTHS
    hra = basic * Decimal("0.4") if basic >= HRA_THRESHOLD else basic * Decimal("0.2")
    balance = fixed_monthly - (basic + hra + conveyance)
    gross = basic + hra + conveyance + balance

    pf = basic * PF_RATE
    deductions = pf + pt
    net = gross - deductions
    annual_net = net * MONTHS

    gross_rounded = round_half_up(gross)
    hourly = round_half_up(gross_rounded / WORKING_HOURS_PER_MONTH, 2)

    return SalaryBreakdown(
        basic=int(round_half_up(basic)),
        hra=int(round_half_up(hra)),
        conveyance=CONVEYANCE_ALLOWANCE,
        balance_allowance=int(round_half_up(balance)),
        gross=int(gross_rounded),
        pf=int(round_half_up(pf)),
        professional_tax=PROFESSIONAL_TAX,
        total_deductions=int(round_half_up(deductions)),
        net_salary=int(round_half_up(net)),
        annual_net=int(round_half_up(annual_net)),
        hourly_rate=float(hourly),
    )


def hourly_rate_from_ctc(annual_ctc: Number, experience_tier: Optional[str],
                         variable_ctc: Number = VARIABLE_CTC) -> float:
    return derive_salary(annual_ctc, experience_tier, variable_ctc).hourly_rate


def _parse_amount(value) -> Optional[Decimal]:
    try:
        return _dec(value)
    except (ArithmeticError, ValueError, TypeError):
        return None


def validate_ctc(value) -> Optional[str]:
    """Return an error message for a bad CTC entry, or None if it is usable."""
    amount = _parse_amount(value)
    if amount is None or not amount.is_finite() or amount < 0:
        return "CTC must be a positive number"
    if amount > MAX_CTC:
        return "CTC must be less than 999,999,999,999,999.99"
    return None


def validate_hourly_rate(value) -> Optional[str]:
    amount = _parse_amount(value)
    if amount is None or not amount.is_finite() or amount <= 0:
        return "Hourly rate must be a positive number"
    if amount >= MAX_HOURLY_RATE:
        return "Hourly rate must be less than 1,000,000"
    return None
