"""
Rate table CSV import.

A file replaces the rate tables of every (shipping method, country, region)
location it mentions and leaves every other location untouched. The whole
import is one transaction: a single bad row rolls back every change, including
shipping methods created for the file.
"""
from __future__ import annotations

import csv
import io
import logging
import os
import re
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from django.conf import settings
from django.db import DatabaseError, transaction

from companies.models import Company

from ..dataclasses import ImportResult, LocationKey, RowError
from ..models import Rate, ShippingOption, invalidate_on_commit
from .row_validator import BatchValidator, CsvRow, apply_corrections, check_numeric_bounds, safe_decimal
from .utils import MAX_PRICE, ZERO, round2

logger = logging.getLogger(__name__)

REQUIRED_HEADERS = [
    "shipping_method",
    "country",
    "region",
    "min_range_lbs",
    "max_range_lbs",
    "flat_rate",
    "min_charge",
]
ALLOWED_CONTENT_TYPES = {"text/csv", "text/plain", "application/vnd.ms-excel"}


class RateImportError(Exception):
    """Base class for problems that stop an import before any row is looked at."""
    pass


class InvalidFileError(RateImportError):
    pass


class MissingColumnsError(RateImportError):
    def __init__(self, missing: List[str]):
        self.missing = missing
        super().__init__(f"Missing required columns: {', '.join(missing)}")


def normalize_header(value: Optional[str]) -> str:
    """' Min Range (lbs) ' -> 'min_range_lbs'"""
    value = re.sub(r"\s+", "_", (value or "").strip().lower())
    return re.sub(r"[^\w]", "", value)


def read_upload(file) -> str:
    """Accepts an uploaded file, an open file or a filesystem path; returns text without a BOM."""
    if isinstance(file, (str, os.PathLike)):
        name = os.fspath(file)
        content_type = None
        with open(name, "rb") as fh:
            raw = fh.read()
    else:
        name = getattr(file, "name", "") or ""
        content_type = getattr(file, "content_type", None)
        raw = file.read()

    if not str(name).lower().endswith(".csv"):
        raise InvalidFileError("Invalid file type. Please upload a CSV file.")
    if content_type and content_type.split(";")[0].strip().lower() not in ALLOWED_CONTENT_TYPES:
        raise InvalidFileError("Invalid file type. Please upload a CSV file.")

    if isinstance(raw, bytes):
        try:
            return raw.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise InvalidFileError(f"File is not valid UTF-8 text: {e}") from e
    return raw.lstrip("\ufeff")


def parse_rows(text: str) -> List[CsvRow]:
    try:
        records = list(csv.reader(io.StringIO(text)))
    except csv.Error as e:
        raise InvalidFileError(f"Malformed CSV file: {e}") from e

    if not records:
        raise MissingColumnsError(list(REQUIRED_HEADERS))
    headers = [normalize_header(h) for h in records[0]]
    missing = [h for h in REQUIRED_HEADERS if h not in headers]
    if missing:
        raise MissingColumnsError(missing)

    rows = []
    for index, values in enumerate(records[1:]):
        data = {h: (values[i] if i < len(values) else None) for i, h in enumerate(headers) if h}
        row = CsvRow(row_number=index + 2, data=data)
        if not row.is_blank():
            rows.append(row)
    return rows


class RateCsvImporter:
    """
    Usage:
        result = RateCsvImporter(company, uploaded_file).run()
        result = RateCsvImporter(company, "rates.csv").run(apply_corrections=True)
    """

    def __init__(self, company: Company, file):
        self.company = company
        self.file = file
        self.row_errors: List[RowError] = []
        self.replaced_count = 0
        self.imported_count = 0

    # --- entry point ---
    def run(self, apply_corrections: bool = False) -> ImportResult:
        if self.file is None:
            return self._failure("No file provided")

        try:
            rows = parse_rows(read_upload(self.file))
        except MissingColumnsError as e:
            logger.warning("[CSV Import] company=%s %s", self.company.id, e)
            return self._failure("Invalid CSV headers", errors=[str(e)])
        except InvalidFileError as e:
            logger.warning("[CSV Import] company=%s rejected file: %s", self.company.id, e)
            return self._failure(str(e))

        if apply_corrections:
            rows = self.apply_auto_corrections(rows)
        rows.sort(key=lambda r: r.sort_key())
        logger.info("[CSV Import] company=%s starting import of %d row(s)", self.company.id, len(rows))

        try:
            self._import(rows)
        except DatabaseError as e:
            logger.error("[CSV Import] company=%s import rolled back: %s", self.company.id, e)
            return self._failure(f"Import failed: {e}")

        return self._result(apply_corrections)

    # --- steps ---
    def apply_auto_corrections(self, rows: List[CsvRow]) -> List[CsvRow]:
        corrected = []
        for row in rows:
            corrections = check_numeric_bounds(row).corrections
            if corrections:
                logger.info("[CSV Import] row %d auto-corrected: %s", row.row_number, corrections)
                row = apply_corrections(row, corrections)
            corrected.append(row)
        return corrected

    def _import(self, rows: List[CsvRow]) -> None:
        with transaction.atomic():
            # Serializes concurrent imports for the same company
            Company.objects.select_for_update().filter(pk=self.company.pk).first()

            options = self.provision_shipping_options(rows)
            keys = self.replacement_keys(rows, options)
            self.replaced_count = Rate.objects.delete_locations(keys)
            if self.replaced_count:
                logger.info("[CSV Import] company=%s deleted %d existing rate(s) across %d location(s)",
                            self.company.id, self.replaced_count, len(keys))

            validator = BatchValidator(options)
            for row in rows:
                error = validator.validate(row)
                if error is not None:
                    self.row_errors.append(error)

            if self.row_errors:
                logger.warning("[CSV Import] company=%s %d row(s) failed validation, rolling back",
                               self.company.id, len(self.row_errors))
                transaction.set_rollback(True)
                self.replaced_count = 0
                return

            Rate.objects.bulk_create(validator.accepted)
            self.imported_count = len(validator.accepted)

            touched = {option_id for option_id, _, _ in keys}
            for option in options.values():
                if option.id in touched:
                    # bulk writes skip Rate.save(), so invalidate here
                    invalidate_on_commit(option.company_id, option.countries or [])

    def provision_shipping_options(self, rows: List[CsvRow]) -> Dict[str, ShippingOption]:
        """
        Make sure every method named in the file exists and serves the countries
        it is given rates for. Returns the options by name.
        """
        summary: Dict[str, Tuple[List[str], Optional[Decimal]]] = {}
        for row in rows:
            name = row.method_name
            if not name:
                continue
            countries, cheapest = summary.setdefault(name, ([], None))
            if row.country and row.country not in countries:
                countries.append(row.country)
            flat_rate = safe_decimal(row.data.get("flat_rate"))
            # Out-of-range prices are left to row validation
            if ZERO < flat_rate <= MAX_PRICE and (cheapest is None or flat_rate < cheapest):
                summary[name] = (countries, flat_rate)

        options: Dict[str, ShippingOption] = {}
        for name, (countries, cheapest) in summary.items():
            option = (
                ShippingOption.objects
                .filter(company_id=self.company.id, name=name)
                .order_by("id")
                .first()
            )
            if option is None:
                option = ShippingOption.objects.create(
                    company_id=self.company.id,
                    name=name,
                    delivery_time=settings.RATE_IMPORT_DEFAULT_DELIVERY_DAYS,
                    starting_rate=round2(cheapest) if cheapest is not None else ZERO,
                    status=ShippingOption.STATUS_ACTIVE,
                    countries=countries,
                )
                logger.info("[CSV Import] company=%s created shipping method '%s' for %s",
                            self.company.id, name, ", ".join(countries))
            else:
                merged = list(option.countries or []) + [c for c in countries if c not in (option.countries or [])]
                lowered = cheapest is not None and cheapest < option.starting_rate
                if merged != list(option.countries or []) or lowered:
                    option.countries = merged
                    if lowered:
                        option.starting_rate = round2(cheapest)
                    option.save()
                    logger.info("[CSV Import] company=%s updated shipping method '%s'", self.company.id, name)
            options[name] = option
        return options

    @staticmethod
    def replacement_keys(rows: List[CsvRow], options: Dict[str, ShippingOption]) -> List[LocationKey]:
        keys: List[LocationKey] = []
        for row in rows:
            option = options.get(row.method_name)
            if option is None or not row.country:
                continue
            key = (option.id, row.country, row.region)
            if key not in keys:
                keys.append(key)
        return keys

    # --- results ---
    def _failure(self, message: str, errors: Optional[List[str]] = None) -> ImportResult:
        errors = list(errors or [])
        errors.append(message)
        return ImportResult(
            success=False,
            message=message,
            errors=errors,
            row_errors=list(self.row_errors),
        )

    def _result(self, apply_corrections: bool) -> ImportResult:
        if apply_corrections:
            blocking = [e for e in self.row_errors if not e.auto_correctable]
            if blocking:
                return self._failure(
                    f"Import failed: {len(blocking)} row(s) have errors that cannot be auto-corrected."
                )
        elif self.row_errors:
            return self._failure(
                f"Import failed: {len(self.row_errors)} row(s) have errors. No records were imported."
            )

        if self.row_errors or self.imported_count == 0:
            return self._failure("No rates were imported")

        message = f"Successfully imported {self.imported_count} rate(s)"
        if self.replaced_count:
            message += f" ({self.replaced_count} existing rate(s) replaced)"
        logger.info("[CSV Import] company=%s %s", self.company.id, message)
        return ImportResult(
            success=True,
            message=message,
            imported_count=self.imported_count,
            replaced_count=self.replaced_count,
        )


def import_rate_table(company: Company, file, apply_corrections: bool = False) -> ImportResult:
    return RateCsvImporter(company, file).run(apply_corrections=apply_corrections)
