from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List

from django.core.exceptions import ValidationError
from django.db import connections, models, transaction
from django.db.models import Q

from .services.intervals import WeightRange, check_tier
from .services.utils import ZERO, normalize_country, normalize_region


def parse_countries(value) -> List[str]:
    """Accept a list or a comma-separated string; returns upper-cased unique codes in order."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    out: List[str] = []
    for code in value:
        code = normalize_country(code)
        if code and code not in out:
            out.append(code)
    return out


def invalidate_on_commit(company_id: int, countries: Iterable[str]) -> None:
    from .services.options_cache import options_cache  # local import to avoid circulars

    countries = sorted(set(countries))
    if not countries:
        return
    transaction.on_commit(lambda: options_cache.invalidate_many(company_id, countries))


class ShippingOptionQuerySet(models.QuerySet):
    def active(self):
        return self.filter(status=ShippingOption.STATUS_ACTIVE)

    def inactive(self):
        return self.filter(status=ShippingOption.STATUS_INACTIVE)

    def for_country(self, country_code):
        code = normalize_country(country_code)
        if connections[self.db].features.supports_json_field_contains:
            return self.filter(countries__contains=[code])
        # SQLite has no JSON containment lookup
        ids = [pk for pk, countries in self.values_list("id", "countries") if code in (countries or [])]
        return self.filter(id__in=ids)

    def ordered_for_country(self, country_code) -> list:
        """Manual per-country order; options without a position sort last, ties by id."""
        code = normalize_country(country_code)
        return sorted(self, key=lambda option: option.sort_key_for_country(code))


class ShippingOption(models.Model):
    STATUS_ACTIVE = 'active'
    STATUS_INACTIVE = 'inactive'
    STATUS_DRAFT = 'draft'
    STATUS_CHOICES = [(STATUS_ACTIVE, 'Active'), (STATUS_INACTIVE, 'Inactive'), (STATUS_DRAFT, 'Draft')]

    id = models.BigAutoField(primary_key=True)
    company = models.ForeignKey('companies.Company', on_delete=models.CASCADE, related_name='shipping_options')
    name = models.TextField()
    # Days; 0 is rendered as "same day"
    delivery_time = models.PositiveIntegerField()
    starting_rate = models.DecimalField(max_digits=10, decimal_places=2, default=ZERO)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    countries = models.JSONField(default=list)
    free_for_subscribers = models.BooleanField(default=False)
    # {"US": 0, "CA": 3}
    country_sort_positions = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ShippingOptionQuerySet.as_manager()

    class Meta:
        db_table = 'shipping_options'
        ordering = ['id']
        indexes = [
            models.Index(fields=['company', 'status'], name='ship_opt_company_status_idx'),
            models.Index(fields=['free_for_subscribers'], name='ship_opt_free_subs_idx'),
        ]

    def __str__(self):
        return self.name

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_countries = list(instance.countries or [])
        return instance

    # --- status helpers ---
    def is_active(self) -> bool:
        return self.status == self.STATUS_ACTIVE

    def enable(self):
        self.status = self.STATUS_ACTIVE
        self.save(update_fields=['status', 'updated_at'])

    def disable(self):
        self.status = self.STATUS_INACTIVE
        self.save(update_fields=['status', 'updated_at'])

    def toggle_status(self):
        if self.is_active():
            self.disable()
        else:
            self.enable()

    # --- per-country ordering ---
    def position_for_country(self, country_code):
        value = (self.country_sort_positions or {}).get(normalize_country(country_code))
        return int(value) if value is not None else None

    def set_position_for_country(self, country_code, position: int):
        positions = dict(self.country_sort_positions or {})
        positions[normalize_country(country_code)] = int(position)
        self.country_sort_positions = positions

    def sort_key_for_country(self, country_code):
        position = self.position_for_country(country_code)
        return (position is None, position if position is not None else 0, self.id or 0)

    def _assign_positions_for_new_countries(self):
        positions = dict(self.country_sort_positions or {})
        siblings = ShippingOption.objects.filter(company_id=self.company_id)
        if self.pk:
            siblings = siblings.exclude(pk=self.pk)
        sibling_positions = list(siblings.values_list("country_sort_positions", flat=True))
        for code in self.countries:
            if code in positions:
                continue
            taken = [int(p[code]) for p in sibling_positions if p and p.get(code) is not None]
            positions[code] = max(taken) + 1 if taken else 0
        self.country_sort_positions = positions

    # --- validation & persistence ---
    def clean(self):
        self.countries = parse_countries(self.countries)
        errors = {}
        if not (self.name or "").strip():
            errors['name'] = "can't be blank"
        if self.delivery_time is None or int(self.delivery_time) <= 0:
            errors['delivery_time'] = "must be greater than 0"
        if self.starting_rate is None or Decimal(self.starting_rate) < ZERO:
            errors['starting_rate'] = "must be greater than or equal to 0"
        if not self.countries:
            errors['countries'] = "can't be blank"
        if self.status not in dict(self.STATUS_CHOICES):
            errors['status'] = "is not included in the list"
        if not errors and self._name_clashes():
            errors['name'] = "is already used by another shipping method serving one of these countries"
        if errors:
            raise ValidationError(errors)

    def _name_clashes(self) -> bool:
        same_name = ShippingOption.objects.filter(company_id=self.company_id, name=self.name.strip())
        if self.pk:
            same_name = same_name.exclude(pk=self.pk)
        mine = set(self.countries)
        return any(mine.intersection(other or []) for other in same_name.values_list("countries", flat=True))

    def save(self, *args, **kwargs):
        self.name = (self.name or "").strip()
        self.countries = parse_countries(self.countries)
        self._assign_positions_for_new_countries()
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'countries' in update_fields:
            kwargs['update_fields'] = set(update_fields) | {'country_sort_positions'}
        super().save(*args, **kwargs)
        # Removed countries must be invalidated as well
        previous = getattr(self, '_loaded_countries', [])
        invalidate_on_commit(self.company_id, set(previous) | set(self.countries))
        self._loaded_countries = list(self.countries)

    def delete(self, *args, **kwargs):
        countries = set(self.countries or []) | set(getattr(self, '_loaded_countries', []))
        company_id = self.company_id
        result = super().delete(*args, **kwargs)
        invalidate_on_commit(company_id, countries)
        return result

    def invalidate_cache(self):
        from .services.options_cache import options_cache  # local import to avoid circulars

        options_cache.invalidate_many(self.company_id, self.countries or [])


class RateQuerySet(models.QuerySet):
    def for_country(self, country_code):
        return self.filter(country=normalize_country(country_code))

    def for_region(self, region_code):
        return self.filter(region=normalize_region(region_code))

    def general_country_rates(self):
        return self.filter(region__isnull=True)

    def for_location(self, shipping_option_id, country, region):
        return self.filter(
            shipping_option_id=shipping_option_id,
            country=normalize_country(country),
            region=normalize_region(region),
        )

    def for_company(self, company_id):
        return self.filter(shipping_option__company_id=company_id)

    def delete_locations(self, keys) -> int:
        """
        Delete every rate under the given (shipping_option_id, country, region)
        keys with a single statement. Per-instance delete() is bypassed, so the
        caller owns cache invalidation.
        """
        keys = list(keys)
        if not keys:
            return 0
        condition = Q()
        for option_id, country, region in keys:
            key_q = Q(shipping_option_id=option_id, country=country)
            key_q &= Q(region__isnull=True) if region is None else Q(region=region)
            condition |= key_q
        deleted, _ = self.filter(condition).delete()
        return deleted


class Rate(models.Model):
    id = models.BigAutoField(primary_key=True)
    shipping_option = models.ForeignKey(ShippingOption, on_delete=models.CASCADE, related_name='rates')
    country = models.CharField(max_length=2)
    # NULL applies to the whole country
    region = models.CharField(max_length=64, blank=True, null=True)
    min_range_lbs = models.DecimalField(max_digits=8, decimal_places=4)
    max_range_lbs = models.DecimalField(max_digits=8, decimal_places=4)
    flat_rate = models.DecimalField(max_digits=10, decimal_places=2)
    min_charge = models.DecimalField(max_digits=10, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = RateQuerySet.as_manager()

    # Set by batch writers that check the first tier themselves
    skip_first_rate_validation = False

    class Meta:
        db_table = 'rates'
        ordering = ['min_range_lbs', 'id']
        indexes = [
            models.Index(fields=['shipping_option', 'country', 'region'], name='rates_option_location_idx'),
            models.Index(fields=['country', 'region'], name='rates_country_region_idx'),
        ]

    def __str__(self):
        return f"{self.country}/{self.region or '*'} {self.weight_range}"

    @property
    def weight_range(self) -> str:
        return f"{self.min_range_lbs} - {self.max_range_lbs} lbs"

    def as_range(self) -> WeightRange:
        return WeightRange(Decimal(self.min_range_lbs), Decimal(self.max_range_lbs))

    def siblings(self):
        qs = Rate.objects.for_location(self.shipping_option_id, self.country, self.region)
        if self.pk:
            qs = qs.exclude(pk=self.pk)
        return qs

    def clean(self):
        self.clean_values()
        stored = [r.as_range() for r in self.siblings()]
        tier_errors = check_tier(self.as_range(), stored)
        if self.skip_first_rate_validation:
            tier_errors = [e for e in tier_errors if not e.startswith("min_range_lbs must be 0")]
        if tier_errors:
            raise ValidationError(tier_errors)

    def clean_values(self):
        """Checks that need no other rows."""
        self.country = normalize_country(self.country)
        self.region = normalize_region(self.region)
        errors = {}
        if len(self.country) != 2 or not self.country.isalpha():
            errors['country'] = "is the wrong length (should be 2 characters)"
        for name in ('min_range_lbs', 'max_range_lbs', 'flat_rate', 'min_charge'):
            value = getattr(self, name)
            if value is None:
                errors[name] = "can't be blank"
            elif Decimal(value) < ZERO:
                errors[name] = "must be greater than or equal to 0"
        if 'min_range_lbs' not in errors and 'max_range_lbs' not in errors:
            if Decimal(self.max_range_lbs) <= Decimal(self.min_range_lbs):
                errors['max_range_lbs'] = "must be greater than min_range_lbs"
        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        self.country = normalize_country(self.country)
        self.region = normalize_region(self.region)
        super().save(*args, **kwargs)
        option = self.shipping_option
        invalidate_on_commit(option.company_id, option.countries or [])

    def delete(self, *args, **kwargs):
        option = self.shipping_option
        result = super().delete(*args, **kwargs)
        invalidate_on_commit(option.company_id, option.countries or [])
        return result
