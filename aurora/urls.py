"""
URL configuration for the aurora project.
"""
from django.urls import include, path

urlpatterns = [
    path('', include('core.urls')),
    path('api/', include('music.urls')),
]
