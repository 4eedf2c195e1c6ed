from django.urls import path

from .views import CartEmailUpdatedView, CartLoggedInView, CustomerLogoutView

urlpatterns = [
    path('callbacks/cart_customer_logged_in', CartLoggedInView.as_view(), name='cart-customer-logged-in'),
    path('callbacks/update_cart_email', CartEmailUpdatedView.as_view(), name='update-cart-email'),
    # Sent after the customer verifies the cart email; same handling as an email change
    path('callbacks/verify_email_success', CartEmailUpdatedView.as_view(), name='verify-email-success'),
    path('callbacks/customer_sessions/logout', CustomerLogoutView.as_view(), name='customer-session-logout'),
]
