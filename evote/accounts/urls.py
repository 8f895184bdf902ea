from django.urls import path
from rest_framework.routers import DefaultRouter

from . import views

app_name = "accounts"

router = DefaultRouter()
router.register(r"voters", views.VoterManagementViewSet, basename="voter")

urlpatterns = [
    path('register/', views.UserRegistrationView.as_view(), name='register'),
    path('login/', views.CustomAuthToken.as_view(), name='api_token_auth'),
    path('me/', views.ProfileView.as_view(), name='profile'),
]

urlpatterns += router.urls
