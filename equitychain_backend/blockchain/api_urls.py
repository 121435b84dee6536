# blockchain/api_urls.py
from django.urls import path

from . import api_views

urlpatterns = [
    path('networks', api_views.networks, name='api-networks'),
    path('networks/<int:chain_id>/projects', api_views.network_projects, name='api-network-projects'),
    path('projects/<str:address>', api_views.project_details, name='api-chain-project'),
    path('projects/<str:address>/investors/<str:investor>', api_views.investor_data, name='api-chain-investor'),
    path('transactions/<str:tx_hash>/verify', api_views.verify_transaction, name='api-verify-transaction'),
]
