from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from import_export import resources
from import_export.admin import ExportMixin, ImportExportModelAdmin

from .models import Alert, Machine, MachineStatus, SensorData, User


# Define resources for import/export
class MachineResource(resources.ModelResource):
    class Meta:
        model = Machine
        fields = ('id', 'name', 'model', 'type', 'serial_number', 'location', 'last_service', 'created_at')


class SensorDataResource(resources.ModelResource):
    class Meta:
        model = SensorData
        fields = ('id', 'machine', 'temperature1', 'temperature2', 'temperature3', 'temperature4',
                  'speed1', 'speed2', 'speed3', 'speed4', 'door1_state', 'door2_state', 'timestamp')


class AlertResource(resources.ModelResource):
    class Meta:
        model = Alert
        fields = ('id', 'machine', 'type', 'severity', 'message', 'is_active', 'created_at', 'resolved_at')


# Admin Configuration
class MachineAdmin(ImportExportModelAdmin, admin.ModelAdmin):
    resource_class = MachineResource
    list_display = ('name', 'model', 'type', 'serial_number', 'location', 'last_service')
    search_fields = ('name', 'serial_number', 'location')
    list_filter = ('type',)


class SensorDataAdmin(ExportMixin, admin.ModelAdmin):
    resource_class = SensorDataResource
    list_display = ('machine', 'temperature1', 'temperature2', 'temperature3', 'temperature4',
                    'speed1', 'speed2', 'speed3', 'speed4', 'door1_state', 'door2_state', 'timestamp')
    list_filter = ('machine', 'timestamp')


class MachineStatusAdmin(admin.ModelAdmin):
    list_display = ('machine', 'status', 'changed_by', 'timestamp')
    list_filter = ('status', 'machine')


class AlertAdmin(ExportMixin, admin.ModelAdmin):
    resource_class = AlertResource
    list_display = ('machine', 'type', 'severity', 'is_active', 'created_at', 'resolved_at')
    search_fields = ('message',)
    list_filter = ('type', 'severity', 'is_active')


class MonitorUserAdmin(UserAdmin):
    list_display = ('username', 'role', 'is_active', 'date_joined')
    list_filter = ('role', 'is_active')
    fieldsets = UserAdmin.fieldsets + (('Monitoring', {'fields': ('role',)}),)


admin.site.register(User, MonitorUserAdmin)
admin.site.register(Machine, MachineAdmin)
admin.site.register(SensorData, SensorDataAdmin)
admin.site.register(MachineStatus, MachineStatusAdmin)
admin.site.register(Alert, AlertAdmin)
