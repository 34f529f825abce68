from django.urls import path
from .views import track_event_view, analytics_summary

urlpatterns = [
    # Public, called by the catalog
    path('catalog/analytics/', track_event_view, name='catalog-analytics'),
    path('analytics/summary/', analytics_summary, name='analytics-summary'),
]
