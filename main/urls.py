from django.urls import path
from main.views import auth_views, user_views, role_views


app_name = 'main'


urlpatterns = [
    path('auth-login', auth_views.login, name='login'),
    path('auth-logout', auth_views.logout, name='logout'),
    path('auth-me', auth_views.me, name='me'),

    path('users', user_views.list_users, name='user-list'),
    path('users/stats', user_views.get_stats, name='user-stats'),
    path('users/create', user_views.create_user, name='user-create'),
    path('users/reset', user_views.reset_users, name='user-reset'),
    path('users/<int:user_id>', user_views.get_user, name='user-detail'),
    path('users/<int:user_id>/update', user_views.update_user, name='user-update'),
    path('users/<int:user_id>/delete', user_views.delete_user, name='user-delete'),

    path('access', role_views.my_access, name='my-access'),
    path('roles', role_views.list_roles, name='role-list'),
    path('roles/<str:role_code>', role_views.get_role, name='role-detail'),
    path('roles/<str:role_code>/check/<str:permission>', role_views.check_permission, name='role-check-permission'),
]
