from django.urls import path

from .views import RateImportView, RateListView, ShippingOptionSortOrderView, ShippingQuoteCallbackView

urlpatterns = [
    path('callbacks/shipping_options', ShippingQuoteCallbackView.as_view(), name='shipping-options-callback'),
    path('api/rates', RateListView.as_view(), name='rate-list'),
    path('api/rates/import', RateImportView.as_view(), name='rate-import'),
    path('api/shipping_options/sort_order', ShippingOptionSortOrderView.as_view(), name='shipping-option-sort-order'),
]
