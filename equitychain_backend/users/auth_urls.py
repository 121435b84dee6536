# users/auth_urls.py
from django.urls import path
from . import api_views

urlpatterns = [
    path('wallet', api_views.wallet_auth, name='api-auth-wallet'),
    path('register', api_views.register, name='api-auth-register'),
    path('profile', api_views.profile, name='api-auth-profile'),
]
