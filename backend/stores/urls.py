from django.urls import path
from .views import store_current

urlpatterns = [
    path('stores/current/', store_current, name='store-current'),
]
