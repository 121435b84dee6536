# projects/investment_urls.py
from django.urls import path

from . import api_views

urlpatterns = [
    path('', api_views.create_investment, name='api-create-investment'),
    path('mine', api_views.my_investments, name='api-my-investments'),
    path('stats', api_views.investment_stats, name='api-investment-stats'),
    path('portfolio', api_views.portfolio, name='api-portfolio'),
    path('verify', api_views.check_transaction, name='api-check-transaction'),
    path('project/<str:project_id>', api_views.project_investments, name='api-project-investments'),
    path('<str:investment_id>/verify', api_views.verify_investment, name='api-verify-investment'),
]
