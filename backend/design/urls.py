from django.urls import path
from . import views

urlpatterns = [
    path('design/theme/', views.design_theme, name='design-theme'),
    path('catalog/<slug:slug>/theme/', views.catalog_theme, name='catalog-theme'),
]
