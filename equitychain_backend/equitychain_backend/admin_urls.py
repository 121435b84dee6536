from django.urls import path

from projects import api_views as project_views
from users import api_views as user_views
from . import views

urlpatterns = [
    path('projects/pending', project_views.admin_pending_projects, name='api-admin-pending-projects'),
    path('projects/<str:project_id>/approve', project_views.approve_project, name='api-admin-approve-project'),
    path('projects/<str:project_id>/reject', project_views.reject_project, name='api-admin-reject-project'),
    path('users', user_views.admin_users, name='api-admin-users'),
    path('users/<int:user_id>', user_views.update_user_flags, name='api-admin-update-user'),
    path('users/<int:user_id>/kyc/approve', user_views.approve_kyc, name='api-admin-approve-kyc'),
    path('users/<int:user_id>/kyc/reject', user_views.reject_kyc, name='api-admin-reject-kyc'),
    path('kyc/pending', user_views.admin_pending_kyc, name='api-admin-pending-kyc'),
    path('stats', project_views.admin_stats, name='api-admin-stats'),
    path('health', views.admin_health, name='api-admin-health'),
]
