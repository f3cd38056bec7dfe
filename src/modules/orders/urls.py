"""Order URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.orders.views import OrderViewSet, RetailerOrderViewSet

router = DefaultRouter(trailing_slash=True)
router.register("orders", OrderViewSet, basename="order")
router.register("retailer/orders", RetailerOrderViewSet, basename="retailer-order")

urlpatterns = router.urls
