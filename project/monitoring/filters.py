import django_filters
from django_filters import rest_framework as filters

from .models import Alert, Machine, MachineStatus, SensorData


class MachineFilter(django_filters.FilterSet):
    name = filters.CharFilter(field_name='name', lookup_expr='icontains')
    type = filters.CharFilter(field_name='type', lookup_expr='iexact')
    location = filters.CharFilter(field_name='location', lookup_expr='icontains')

    class Meta:
        model = Machine
        fields = ['name', 'type', 'location']


class SensorDataFilter(django_filters.FilterSet):
    machine = filters.NumberFilter(field_name='machine_id')
    date_from = filters.IsoDateTimeFilter(field_name='timestamp', lookup_expr='gte')
    date_to = filters.IsoDateTimeFilter(field_name='timestamp', lookup_expr='lte')

    class Meta:
        model = SensorData
        fields = ['machine', 'date_from', 'date_to']


class MachineStatusFilter(django_filters.FilterSet):
    machine = filters.NumberFilter(field_name='machine_id')
    status = filters.ChoiceFilter(choices=MachineStatus.STATUS_CHOICES)

    class Meta:
        model = MachineStatus
        fields = ['machine', 'status']


class AlertFilter(django_filters.FilterSet):
    machine = filters.NumberFilter(field_name='machine_id')
    type = filters.ChoiceFilter(choices=Alert.TYPE_CHOICES)
    severity = filters.ChoiceFilter(choices=Alert.SEVERITY_CHOICES)
    is_active = filters.BooleanFilter(field_name='is_active')
    date_from = filters.IsoDateTimeFilter(field_name='created_at', lookup_expr='gte')
    date_to = filters.IsoDateTimeFilter(field_name='created_at', lookup_expr='lte')

    class Meta:
        model = Alert
        fields = ['machine', 'type', 'severity', 'is_active', 'date_from', 'date_to']
