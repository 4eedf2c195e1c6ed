from django.contrib import admin

from .models import Company


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "platform_company_id", "active", "subscription_program", "free_shipping_for_subscribers")
    list_filter = ("active", "subscription_program", "free_shipping_for_subscribers")
    search_fields = ("name",)
