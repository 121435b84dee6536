# users/api_urls.py
from django.urls import path
from . import api_views

urlpatterns = [
    path('profile', api_views.profile, name='api-user-profile'),
    path('kyc-status', api_views.kyc_status, name='api-user-kyc-status'),
]
