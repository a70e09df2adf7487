"""Order URL configuration."""

from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from modules.orders.views import CheckoutView, OrderAdminViewSet

router = DefaultRouter(trailing_slash=True)
router.register("orders-admin", OrderAdminViewSet, basename="order-admin")

urlpatterns = [
    path("checkout/", CheckoutView.as_view(), name="checkout"),
    *router.urls,
]
