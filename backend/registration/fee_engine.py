"""
Registration Fee Engine

Pure, deterministic fee computation for homestay registrations:

- Base fee from the category x location-type tariff
- GST on top of the base fee
- Discounts applied in a fixed order, each on what remains after the previous
  one: multi-year validity, female owner, remote sub-division
- All amounts are Decimal, rounded half-up to paise

Nothing here touches the database; the same inputs always give the same
breakdown.
"""

from dataclasses import dataclass, field, fields, replace
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from .conf import fee_overrides
from .domain_application import Category, LocationType, OwnerGender, ROOM_CLASSES
from .workflow_errors import IncompleteFee, ValidationFailed

__all__ = [
    'DEFAULT_TARIFF', 'VALIDITY_OPTIONS', 'FeeSchedule', 'FeeBreakdown', 'compute_fee',
    'fee_for_application', 'missing_fee_inputs', 'average_room_rate', 'suggest_category',
    'validate_category_selection', 'CategoryCheck',
]

PAISE = Decimal('0.01')
HUNDRED = Decimal('100')

DEFAULT_TARIFF: Dict[str, Dict[str, Decimal]] = {
    Category.DIAMOND: {
        LocationType.MUNICIPAL: Decimal('18000'),
        LocationType.TOWN_PLANNING: Decimal('12000'),
        LocationType.GRAM_PANCHAYAT: Decimal('10000'),
    },
    Category.GOLD: {
        LocationType.MUNICIPAL: Decimal('12000'),
        LocationType.TOWN_PLANNING: Decimal('8000'),
        LocationType.GRAM_PANCHAYAT: Decimal('6000'),
    },
    Category.SILVER: {
        LocationType.MUNICIPAL: Decimal('8000'),
        LocationType.TOWN_PLANNING: Decimal('5000'),
        LocationType.GRAM_PANCHAYAT: Decimal('3000'),
    },
}

VALIDITY_OPTIONS = (1, 3)


def _money(value) -> Decimal:
    return Decimal(value).quantize(PAISE, rounding=ROUND_HALF_UP)


def _percent(amount: Decimal, pct: Decimal) -> Decimal:
    return _money(amount * pct / HUNDRED)


@dataclass(frozen=True)
class FeeSchedule:
    """Tariff and discount rates. Percentages are plain numbers (10 means 10%)."""
    tariff: Dict[str, Dict[str, Decimal]] = field(default_factory=lambda: DEFAULT_TARIFF)
    gst_rate: Decimal = Decimal('18')
    three_year_discount: Decimal = Decimal('10')
    female_owner_discount: Decimal = Decimal('5')
    sub_division_discount: Decimal = Decimal('50')

    def __post_init__(self):
        for name in ('gst_rate', 'three_year_discount', 'female_owner_discount', 'sub_division_discount'):
            value = Decimal(str(getattr(self, name)))
            if value < 0 or value > HUNDRED:
                raise ValueError(f"{name} must be between 0 and 100, got {value}")
            object.__setattr__(self, name, value)

    @classmethod
    def from_settings(cls) -> 'FeeSchedule':
        """Default schedule with any ``HOMESTAY_FEES`` overrides applied."""
        overrides = fee_overrides()
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown HOMESTAY_FEES keys: {', '.join(sorted(unknown))}")
        if 'tariff' in overrides:
            overrides['tariff'] = {
                str(cat): {str(loc): Decimal(str(amount)) for loc, amount in row.items()}
                for cat, row in overrides['tariff'].items()
            }
        return replace(cls(), **overrides)

    def base_fee(self, category: str, location_type: str) -> Decimal:
        try:
            return Decimal(self.tariff[category][location_type])
        except KeyError:
            raise ValidationFailed({
                'category': f"No tariff for category '{category}' and location type '{location_type}'."
            })


@dataclass(frozen=True)
class FeeBreakdown:
    base_fee: Decimal
    gst_amount: Decimal
    total_before_discounts: Decimal
    validity_discount: Decimal
    female_owner_discount: Decimal
    sub_division_discount: Decimal
    total_discount: Decimal
    total_fee: Decimal

    def as_fields(self) -> Dict[str, Decimal]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def compute_fee(
    category: Optional[str],
    location_type: Optional[str],
    validity_years: Optional[int],
    owner_gender: Optional[str] = None,
    is_sub_division_exception: bool = False,
    schedule: Optional[FeeSchedule] = None,
) -> FeeBreakdown:
    """
    Compute the registration fee breakdown.

    Args:
        category: diamond / gold / silver
        location_type: municipal / town_planning / gram_panchayat
        validity_years: 1 or 3
        owner_gender: only ``female`` changes the result
        is_sub_division_exception: property lies in the designated remote sub-division
        schedule: tariff and rates; defaults to the settings-driven schedule

    Returns:
        FeeBreakdown with ``0 <= total_fee <= total_before_discounts``

    Raises:
        IncompleteFee: category, location type or validity missing
        ValidationFailed: a value outside the allowed set
    """
    missing = [name for name, value in (
        ('category', category),
        ('location_type', location_type),
        ('validity_years', validity_years),
    ) if value in (None, '')]
    if missing:
        raise IncompleteFee(missing)
    try:
        validity_years = int(validity_years)
    except (TypeError, ValueError):
        raise ValidationFailed({'validity_years': 'Must be a whole number of years.'})
    if validity_years not in VALIDITY_OPTIONS:
        raise ValidationFailed({'validity_years': f"Must be one of {', '.join(map(str, VALIDITY_OPTIONS))}."})

    schedule = schedule or FeeSchedule.from_settings()
    base = _money(schedule.base_fee(category, location_type))
    gst = _percent(base, schedule.gst_rate)
    total_before = base + gst

    validity_discount = _percent(total_before, schedule.three_year_discount) if validity_years == 3 else Decimal('0.00')
    remaining = total_before - validity_discount

    female_discount = Decimal('0.00')
    if owner_gender == OwnerGender.FEMALE:
        female_discount = _percent(remaining, schedule.female_owner_discount)
        remaining -= female_discount

    sub_division_discount = Decimal('0.00')
    if is_sub_division_exception:
        sub_division_discount = _percent(remaining, schedule.sub_division_discount)

    total_discount = min(validity_discount + female_discount + sub_division_discount, total_before)
    total_fee = max(total_before - total_discount, Decimal('0.00'))
    return FeeBreakdown(
        base_fee=base,
        gst_amount=gst,
        total_before_discounts=total_before,
        validity_discount=validity_discount,
        female_owner_discount=female_discount,
        sub_division_discount=sub_division_discount,
        total_discount=total_discount,
        total_fee=total_fee,
    )


def missing_fee_inputs(application) -> List[str]:
    """Fee inputs still blank on an application, in a stable order."""
    return [name for name in ('category', 'location_type', 'validity_years', 'owner_gender')
            if getattr(application, name, None) in (None, '')]


def fee_for_application(application, schedule: Optional[FeeSchedule] = None) -> FeeBreakdown:
    missing = missing_fee_inputs(application)
    if missing:
        raise IncompleteFee(missing)
    return compute_fee(
        application.category,
        application.location_type,
        application.validity_years,
        application.owner_gender,
        bool(application.is_sub_division_exception),
        schedule=schedule,
    )


# Category bands by average nightly room rate
CATEGORY_REQUIREMENTS = {
    Category.DIAMOND: {'min_rooms': 5, 'min_rate': Decimal('10000'), 'max_rate': None},
    Category.GOLD: {'min_rooms': 1, 'min_rate': Decimal('3000'), 'max_rate': Decimal('10000')},
    Category.SILVER: {'min_rooms': 1, 'min_rate': Decimal('0'), 'max_rate': Decimal('3000')},
}


def average_room_rate(application) -> Decimal:
    """Average tariff per room across all classes; zero when there are no rooms."""
    total_rooms = 0
    revenue = Decimal('0')
    for count_field, rate_field, _size in ROOM_CLASSES:
        count = int(getattr(application, count_field, 0) or 0)
        rate = getattr(application, rate_field, None) or Decimal('0')
        total_rooms += count
        revenue += count * Decimal(str(rate))
    if not total_rooms:
        return Decimal('0.00')
    return _money(revenue / total_rooms)


def suggest_category(total_rooms: int, average_rate: Decimal) -> str:
    average_rate = Decimal(str(average_rate))
    if total_rooms >= 5 and average_rate > Decimal('10000'):
        return Category.DIAMOND
    if average_rate >= Decimal('3000'):
        return Category.GOLD
    return Category.SILVER


@dataclass
class CategoryCheck:
    is_valid: bool
    errors: List[str]
    warnings: List[str]
    suggested_category: Optional[str] = None


def validate_category_selection(category: str, total_rooms: int, average_rate: Decimal) -> CategoryCheck:
    """Advisory check of a chosen category against room count and rate bands.

    Errors mean the category is out of band; warnings only suggest upgrading.
    """
    req = CATEGORY_REQUIREMENTS[Category(category)]
    average_rate = Decimal(str(average_rate))
    label = Category(category).label
    errors, warnings = [], []
    suggested = None
    if total_rooms < req['min_rooms']:
        errors.append(f"{label} category requires minimum {req['min_rooms']} rooms. You have {total_rooms}.")
    if average_rate < req['min_rate']:
        errors.append(f"{label} category requires average rate of at least {req['min_rate']}/night.")
        if category == Category.DIAMOND:
            suggested = Category.GOLD
        elif category == Category.GOLD:
            suggested = Category.SILVER
    if req['max_rate'] is not None and average_rate > req['max_rate']:
        warnings.append(f"Average rate {average_rate} exceeds the usual {label} maximum of {req['max_rate']}.")
        if category == Category.SILVER:
            suggested = Category.GOLD
        elif category == Category.GOLD and total_rooms >= 5:
            suggested = Category.DIAMOND
    return CategoryCheck(is_valid=not errors, errors=errors, warnings=warnings, suggested_category=suggested)
