from django.db import models


class CompanyQuerySet(models.QuerySet):
    def for_platform_id(self, platform_company_id):
        """The company the platform calls by this id, or None for blank or malformed ids."""
        if platform_company_id in (None, ""):
            return None
        try:
            return self.filter(platform_company_id=int(platform_company_id)).first()
        except (TypeError, ValueError):
            return None


class Company(models.Model):
    id = models.BigAutoField(primary_key=True)
    name = models.TextField()
    # Id the e-commerce platform sends in its cart callbacks
    platform_company_id = models.BigIntegerField(unique=True)
    active = models.BooleanField(default=True)
    # Merchant runs a customer subscription program with shipping perks
    subscription_program = models.BooleanField(default=False)
    free_shipping_for_subscribers = models.BooleanField(default=False)
    # Per-company subscription API credentials, e.g. {"subscription_api_url": ..., "subscription_api_token": ...}
    settings = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = CompanyQuerySet.as_manager()

    class Meta:
        db_table = 'companies'
        verbose_name_plural = 'Companies'

    def __str__(self):
        return self.name

    def subscriber_perks_enabled(self) -> bool:
        return bool(self.subscription_program and self.free_shipping_for_subscribers)

    def setting(self, key: str, default=None):
        value = (self.settings or {}).get(key)
        return default if value in (None, "") else value
