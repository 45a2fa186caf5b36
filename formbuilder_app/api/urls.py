from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
)

router = DefaultRouter()
router.register(r'questionnaires', views.QuestionnaireViewSet, basename='questionnaire')
router.register(r'sections', views.SectionViewSet, basename='section')
router.register(r'controls', views.ControlViewSet, basename='control')

urlpatterns = [
    path('health', views.healthcheck, name='healthcheck'),
    path('token', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('token/refresh', TokenRefreshView.as_view(), name='token_refresh'),
    path('catalog', views.catalog, name='catalog'),
    path('', include(router.urls)),
]
