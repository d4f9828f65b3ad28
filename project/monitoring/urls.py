from django.urls import path

from . import views

urlpatterns = [
    path('users/register', views.register, name='user-register'),
    path('users/login', views.login, name='user-login'),
    path('users', views.UserListView.as_view(), name='user-list'),
    path('users/profile/<int:pk>', views.ProfileView.as_view(), name='user-profile'),
    path('users/change-password/<int:pk>', views.ChangePasswordView.as_view(), name='user-change-password'),
    path('users/<int:pk>', views.UserDetailView.as_view(), name='user-detail'),

    path('machines', views.MachineListView.as_view(), name='machine-list'),
    path('machines/<int:pk>', views.MachineDetailView.as_view(), name='machine-detail'),

    path('sensor-data', views.SensorDataListView.as_view(), name='sensor-data-list'),
    path('sensor-data/all', views.purge_sensor_data, name='sensor-data-purge'),
    path('sensor-data/machine/<int:machine_id>/latest', views.latest_sensor_data, name='sensor-data-latest'),
    path('sensor-data/machine/<int:machine_id>', views.sensor_data_history, name='sensor-data-history'),

    path('machine-status', views.MachineStatusListView.as_view(), name='machine-status-list'),
    path('machine-status/machine/<int:machine_id>', views.current_machine_status, name='machine-status-current'),
    path('machine-status/history/<int:machine_id>', views.machine_status_history, name='machine-status-history'),

    path('alerts', views.AlertListView.as_view(), name='alert-list'),
    path('alerts/active', views.ActiveAlertListView.as_view(), name='alert-active'),
    path('alerts/machine/<int:machine_id>', views.MachineAlertListView.as_view(), name='alert-machine'),
    path('alerts/<int:pk>', views.alert_detail, name='alert-detail'),
    path('alerts/<int:pk>/resolve', views.resolve_alert, name='alert-resolve'),
]
