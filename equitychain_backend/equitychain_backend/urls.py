# equitychain_backend/urls.py
from django.contrib import admin
from django.urls import path, include

from . import views

urlpatterns = [
    path('admin/', admin.site.urls),
    path('health', views.health, name='health'),
    path('api/auth/', include('users.auth_urls')),
    path('api/users/', include('users.api_urls')),
    path('api/projects/', include('projects.api_urls')),
    path('api/investments/', include('projects.investment_urls')),
    path('api/admin/', include('equitychain_backend.admin_urls')),
    path('api/blockchain/', include('blockchain.api_urls')),
]
