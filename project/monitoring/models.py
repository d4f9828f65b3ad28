from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import Q
from django.utils import timezone


class User(AbstractUser):
    ADMIN = 'admin'
    TECHNICIAN = 'technician'
    VIEWER = 'viewer'
    ROLE_CHOICES = [
        (ADMIN, 'Admin'),
        (TECHNICIAN, 'Technician'),
        (VIEWER, 'Viewer'),
    ]

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=VIEWER)

    def __str__(self):
        return self.username


class Machine(models.Model):
    name = models.CharField(max_length=100)
    model = models.CharField(max_length=100)
    type = models.CharField(max_length=100)
    serial_number = models.CharField(max_length=100)
    location = models.CharField(max_length=200)
    last_service = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name', 'id']

    def __str__(self):
        return f"{self.name} ({self.serial_number})"


class SensorData(models.Model):
    machine = models.ForeignKey(Machine, on_delete=models.CASCADE, related_name='sensor_data')
    temperature1 = models.FloatField(default=0)
    temperature2 = models.FloatField(default=0)
    temperature3 = models.FloatField(default=0)
    temperature4 = models.FloatField(default=0)
    speed1 = models.FloatField(default=0)
    speed2 = models.FloatField(default=0)
    speed3 = models.FloatField(default=0)
    speed4 = models.FloatField(default=0)
    door1_state = models.BooleanField(default=False)
    door2_state = models.BooleanField(default=False)
    timestamp = models.DateTimeField(default=timezone.now, db_index=True)

    TEMPERATURE_FIELDS = ('temperature1', 'temperature2', 'temperature3', 'temperature4')
    SPEED_FIELDS = ('speed1', 'speed2', 'speed3', 'speed4')
    DOOR_FIELDS = ('door1_state', 'door2_state')

    class Meta:
        verbose_name_plural = 'sensor data'
        indexes = [
            models.Index(fields=['machine', 'timestamp'], name='sensordata_machine_ts_idx'),
        ]

    def __str__(self):
        return f"Reading {self.pk} for machine {self.machine_id} at {self.timestamp:%Y-%m-%d %H:%M:%S}"


class MachineStatus(models.Model):
    ONLINE = 'online'
    OFFLINE = 'offline'
    MAINTENANCE = 'maintenance'
    ERROR = 'error'
    STATUS_CHOICES = [
        (ONLINE, 'Online'),
        (OFFLINE, 'Offline'),
        (MAINTENANCE, 'Maintenance'),
        (ERROR, 'Error'),
    ]

    machine = models.ForeignKey(Machine, on_delete=models.CASCADE, related_name='statuses')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=OFFLINE)
    # null when the change was made by the alert evaluator
    changed_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='status_changes'
    )
    timestamp = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        verbose_name_plural = 'machine statuses'
        indexes = [
            models.Index(fields=['machine', 'timestamp'], name='machinestatus_machine_ts_idx'),
        ]

    def __str__(self):
        return f"Machine {self.machine_id}: {self.status}"


class Alert(models.Model):
    TEMPERATURE = 'temperature'
    DOOR = 'door'
    SPEED = 'speed'
    MAINTENANCE = 'maintenance'
    OTHER = 'other'
    TYPE_CHOICES = [
        (TEMPERATURE, 'Temperature'),
        (DOOR, 'Door'),
        (SPEED, 'Speed'),
        (MAINTENANCE, 'Maintenance'),
        (OTHER, 'Other'),
    ]

    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    CRITICAL = 'critical'
    SEVERITY_CHOICES = [
        (LOW, 'Low'),
        (MEDIUM, 'Medium'),
        (HIGH, 'High'),
        (CRITICAL, 'Critical'),
    ]

    machine = models.ForeignKey(Machine, on_delete=models.CASCADE, related_name='alerts')
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    severity = models.CharField(max_length=20, choices=SEVERITY_CHOICES)
    message = models.TextField()
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['machine', 'type'],
                condition=Q(is_active=True),
                name='unique_active_alert_per_machine_type',
            ),
        ]

    def __str__(self):
        return f"{self.get_type_display()} alert ({self.severity}) on machine {self.machine_id}"
