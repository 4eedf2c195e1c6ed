from django.contrib import admin, messages

from .models import Rate, ShippingOption


class RateInline(admin.TabularInline):
    model = Rate
    extra = 0
    fields = ("country", "region", "min_range_lbs", "max_range_lbs", "flat_rate", "min_charge")


@admin.register(ShippingOption)
class ShippingOptionAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "company", "status", "delivery_time", "starting_rate", "free_for_subscribers")
    list_filter = ("status", "free_for_subscribers", "company")
    search_fields = ("name",)
    inlines = [RateInline]
    actions = ["toggle_status"]

    def toggle_status(self, request, queryset):
        for option in queryset:
            option.toggle_status()
            messages.info(request, f"{option.name}: {option.status}")
    toggle_status.short_description = "Enable/disable selected shipping methods"


@admin.register(Rate)
class RateAdmin(admin.ModelAdmin):
    list_display = ("id", "shipping_option", "country", "region", "weight_range", "flat_rate", "min_charge")
    list_filter = ("country", "shipping_option")
    search_fields = ("shipping_option__name", "country", "region")
