from django.urls import path, include
from rest_framework.routers import DefaultRouter
from logistics.views import RiderLocationViewSet

router = DefaultRouter()
router.register(r'rider-location', RiderLocationViewSet, basename='rider-location')

urlpatterns = [
    path('api/v1/', include(router.urls)),
]
