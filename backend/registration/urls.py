"""
API routing for the registration app (mounted under /api/).
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .views_applications import ApplicationViewSet, FeePreviewView
from .views_auth import MeView
from .views_documents import DocumentViewSet
from .views_inspection import InspectionOrderViewSet
from .views_payments import PaymentCallbackView
from .views_public import PublicPropertyViewSet

router = DefaultRouter()
router.register(r'applications', ApplicationViewSet, basename='application')
router.register(r'documents', DocumentViewSet, basename='document')
router.register(r'inspections', InspectionOrderViewSet, basename='inspection')
router.register(r'public/properties', PublicPropertyViewSet, basename='public-property')

urlpatterns = [
    # --- AUTH ---
    path('auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', MeView.as_view(), name='auth-me'),

    # --- FEES / PAYMENTS ---
    path('fees/preview/', FeePreviewView.as_view(), name='fee-preview'),
    path('payments/callback/', PaymentCallbackView.as_view(), name='payment-callback'),

    path('', include(router.urls)),
]
