from datetime import datetime, time, timezone as dt_timezone

from django.utils.dateparse import parse_date
from rest_framework import serializers

from .models import Alert, Machine, MachineStatus, SensorData, User


class InstantField(serializers.DateTimeField):
    """
    DateTimeField that also accepts a bare ``YYYY-MM-DD`` date, read as
    midnight UTC. Output is always an ISO-8601 UTC instant.
    """

    def to_internal_value(self, value):
        if isinstance(value, str):
            try:
                parsed = parse_date(value.strip())
            except ValueError:
                self.fail('invalid', format='YYYY-MM-DD or ISO-8601')
            if parsed is not None:
                value = datetime.combine(parsed, time.min, tzinfo=dt_timezone.utc)
        return super().to_internal_value(value)


class MachineSerializer(serializers.ModelSerializer):
    last_service = InstantField(required=False)

    class Meta:
        model = Machine
        fields = [
            'id', 'name', 'model', 'type', 'serial_number', 'location',
            'last_service', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']


class SensorDataSerializer(serializers.ModelSerializer):
    class Meta:
        model = SensorData
        fields = [
            'id', 'machine',
            'temperature1', 'temperature2', 'temperature3', 'temperature4',
            'speed1', 'speed2', 'speed3', 'speed4',
            'door1_state', 'door2_state', 'timestamp',
        ]


class SensorDataInputSerializer(serializers.Serializer):
    """
    Ingestion payload. The machine is resolved by the view from ``machine``
    or ``machineId``; missing channels read as 0 and closed doors. Readings
    are always stamped by the server.
    """
    temperature1 = serializers.FloatField(required=False, allow_null=True)
    temperature2 = serializers.FloatField(required=False, allow_null=True)
    temperature3 = serializers.FloatField(required=False, allow_null=True)
    temperature4 = serializers.FloatField(required=False, allow_null=True)
    speed1 = serializers.FloatField(required=False, allow_null=True)
    speed2 = serializers.FloatField(required=False, allow_null=True)
    speed3 = serializers.FloatField(required=False, allow_null=True)
    speed4 = serializers.FloatField(required=False, allow_null=True)
    door1_state = serializers.BooleanField(required=False, allow_null=True)
    door2_state = serializers.BooleanField(required=False, allow_null=True)

    def validate(self, attrs):
        for name in SensorData.TEMPERATURE_FIELDS + SensorData.SPEED_FIELDS:
            attrs[name] = attrs.get(name) or 0
        for name in SensorData.DOOR_FIELDS:
            attrs[name] = bool(attrs.get(name))
        return attrs


class MachineStatusSerializer(serializers.ModelSerializer):
    changed_by_username = serializers.SerializerMethodField()

    class Meta:
        model = MachineStatus
        fields = ['id', 'machine', 'status', 'changed_by', 'changed_by_username', 'timestamp']

    def get_changed_by_username(self, obj):
        return obj.changed_by.username if obj.changed_by_id else None


class MachineStatusInputSerializer(serializers.Serializer):
    machine = serializers.IntegerField()
    status = serializers.CharField()
    changed_by = serializers.IntegerField(required=False, allow_null=True)


class AlertSerializer(serializers.ModelSerializer):
    machine_name = serializers.CharField(source='machine.name', read_only=True)
    machine_serial_number = serializers.CharField(source='machine.serial_number', read_only=True)

    class Meta:
        model = Alert
        fields = [
            'id', 'machine', 'machine_name', 'machine_serial_number', 'type', 'severity',
            'message', 'is_active', 'created_at', 'resolved_at',
        ]
        read_only_fields = ['id', 'is_active', 'created_at', 'resolved_at']
        # the single-active-alert constraint is checked in validate()
        validators = []

    def validate(self, attrs):
        if Alert.objects.filter(machine=attrs['machine'], type=attrs['type'], is_active=True).exists():
            raise serializers.ValidationError(
                {'type': f"An active {attrs['type']} alert already exists for this machine"}
            )
        return attrs


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'role', 'is_active', 'date_joined']
        read_only_fields = fields


class RegisterSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    password = serializers.CharField(write_only=True, min_length=6)
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES, required=False)


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(write_only=True)


class ChangePasswordSerializer(serializers.Serializer):
    currentPassword = serializers.CharField()
    newPassword = serializers.CharField(min_length=6)


class ProfileSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)


class UserUpdateSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150, required=False)
    password = serializers.CharField(min_length=6, required=False, write_only=True)
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES, required=False)
    is_active = serializers.BooleanField(required=False)
