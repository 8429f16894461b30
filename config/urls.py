"""
URL configuration for the Growbro catalog.
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/catalog/', include('apps.catalog.api.urls')),
    path('api-auth/', include('rest_framework.urls')),
]
