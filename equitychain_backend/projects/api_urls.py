# projects/api_urls.py
from django.urls import path

from . import api_views

urlpatterns = [
    path('', api_views.project_list, name='api-projects'),
    path('categories', api_views.categories, name='api-project-categories'),
    path('mine', api_views.my_projects, name='api-my-projects'),
    path('contract/<str:address>', api_views.project_by_contract, name='api-project-by-contract'),
    path('contract/<str:address>/sync', api_views.sync_contract, name='api-project-sync-contract'),
    path('<str:project_id>', api_views.project_detail, name='api-project-detail'),
    path('<str:project_id>/deploy', api_views.deploy_project, name='api-project-deploy'),
    path('<str:project_id>/sync', api_views.sync_project, name='api-project-sync'),
]
