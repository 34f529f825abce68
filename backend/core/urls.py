from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView
from .views import StoreTokenObtainPairView, user_me, user_list, audit_log_list

urlpatterns = [
    # Auth endpoints
    path('auth/login/', StoreTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', user_me, name='user-me'),

    # User endpoints
    path('users/', user_list, name='user-list'),

    # AuditLog endpoints
    path('audit-logs/', audit_log_list, name='audit-log-list'),
]
