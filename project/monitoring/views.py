import logging

from django.conf import settings
from django.db import IntegrityError
from rest_framework import generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from . import services
from .exceptions import ConflictError, ValidationError
from .filters import AlertFilter, MachineFilter, MachineStatusFilter, SensorDataFilter
from .models import Alert, Machine, MachineStatus, SensorData, User
from .permissions import HasRole, IsAdmin, IsSelfOrAdmin, IsTechnician
from .serializers import (
    AlertSerializer,
    ChangePasswordSerializer,
    LoginSerializer,
    MachineSerializer,
    MachineStatusInputSerializer,
    MachineStatusSerializer,
    ProfileSerializer,
    RegisterSerializer,
    SensorDataInputSerializer,
    SensorDataSerializer,
    UserSerializer,
    UserUpdateSerializer,
)

logger = logging.getLogger(__name__)


class RoleRequiredMixin:
    """
    Declares the minimum role per HTTP method; anything not listed needs an
    authenticated viewer.
    """
    required_roles = {}

    def get_permissions(self):
        role = self.required_roles.get(self.request.method, User.VIEWER)
        return [HasRole.of(role)()]


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """
    Create a user account.

    Body: username, password, role (optional, defaults to viewer).
    Returns:
        201 with the new userId, 400 if the username is taken.
    """
    serializer = RegisterSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = services.register_user(requested_by=request.user, **serializer.validated_data)
    return Response({"message": "User created successfully", "userId": user.pk}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
def login(request):
    """
    Exchange username and password for a bearer token.

    Returns:
        200 with token, userId, username and role; 401 on bad credentials.
    """
    serializer = LoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    return Response(services.login(**serializer.validated_data), status=status.HTTP_200_OK)


class UserListView(generics.ListAPIView):
    queryset = User.objects.all().order_by('username')
    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated]


class UserDetailView(RoleRequiredMixin, APIView):
    required_roles = {'PATCH': User.ADMIN, 'DELETE': User.ADMIN}

    def get(self, request, pk):
        user = services.get_or_404(User, pk, 'User')
        return Response(UserSerializer(user).data)

    def patch(self, request, pk):
        user = services.get_or_404(User, pk, 'User')
        serializer = UserUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = services.update_user(user, dict(serializer.validated_data))
        return Response(UserSerializer(user).data)

    def delete(self, request, pk):
        services.delete_user(pk)
        return Response({"message": "User deleted successfully"}, status=status.HTTP_200_OK)


class ProfileView(APIView):
    permission_classes = [IsSelfOrAdmin]

    def patch(self, request, pk):
        user = services.get_or_404(User, pk, 'User')
        self.check_object_permissions(request, user)
        serializer = ProfileSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = services.update_profile(user, serializer.validated_data['username'])
        return Response(UserSerializer(user).data)


class ChangePasswordView(APIView):
    permission_classes = [IsSelfOrAdmin]

    def post(self, request, pk):
        user = services.get_or_404(User, pk, 'User')
        self.check_object_permissions(request, user)
        serializer = ChangePasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.change_password(
            user,
            serializer.validated_data['currentPassword'],
            serializer.validated_data['newPassword'],
        )
        return Response({"message": "Password updated successfully"})


class MachineListView(RoleRequiredMixin, generics.ListCreateAPIView):
    queryset = Machine.objects.all()
    serializer_class = MachineSerializer
    filterset_class = MachineFilter
    required_roles = {'POST': User.TECHNICIAN}

    def perform_create(self, serializer):
        machine = serializer.save()
        logger.info("Machine %s created by %s", machine.pk, self.request.user)


class MachineDetailView(RoleRequiredMixin, generics.RetrieveUpdateDestroyAPIView):
    queryset = Machine.objects.all()
    serializer_class = MachineSerializer
    required_roles = {'PUT': User.TECHNICIAN, 'PATCH': User.TECHNICIAN, 'DELETE': User.ADMIN}

    def get_object(self):
        return services.get_or_404(Machine, self.kwargs['pk'], 'Machine')

    def destroy(self, request, *args, **kwargs):
        services.delete_machine(self.kwargs['pk'])
        return Response({"message": "Machine deleted successfully"}, status=status.HTTP_200_OK)


class SensorDataListView(RoleRequiredMixin, generics.ListCreateAPIView):
    queryset = SensorData.objects.all().order_by('-timestamp', '-id')
    serializer_class = SensorDataSerializer
    filterset_class = SensorDataFilter
    required_roles = {'POST': User.TECHNICIAN}

    def create(self, request, *args, **kwargs):
        """
        Ingest one reading. The machine may be given as ``machine`` or
        ``machineId``. The reading is evaluated against the alert thresholds
        before the response is sent.
        """
        if not isinstance(request.data, dict) or not request.data:
            raise ValidationError('Empty request body')
        machine_id = request.data.get('machineId') or request.data.get('machine')
        if not machine_id:
            raise ValidationError('Machine ID is required')
        machine = services.get_or_404(Machine, machine_id, 'Machine')

        serializer = SensorDataInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reading, _evaluation = services.record_reading({'machine': machine, **serializer.validated_data})
        return Response(SensorDataSerializer(reading).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
def latest_sensor_data(request, machine_id):
    """
    Latest reading for a machine. Machines with no readings get an all-zero
    reading stamped with the current time.
    """
    reading = services.latest_reading(machine_id)
    if reading is None:
        return Response(SensorDataSerializer(services.default_reading(machine_id)).data)
    return Response(SensorDataSerializer(reading).data)


@api_view(['GET'])
def sensor_data_history(request, machine_id):
    """Most recent readings for a machine, newest first."""
    limit = settings.MONITORING['SENSOR_HISTORY_LIMIT']
    readings = services.reading_history(machine_id, limit)
    return Response(SensorDataSerializer(readings, many=True).data)


@api_view(['DELETE'])
@permission_classes([IsAdmin])
def purge_sensor_data(request):
    deleted = services.purge_readings()
    return Response({"message": "All sensor data deleted successfully", "deletedCount": deleted})


class MachineStatusListView(RoleRequiredMixin, generics.ListCreateAPIView):
    queryset = MachineStatus.objects.select_related('changed_by').order_by('-timestamp', '-id')
    serializer_class = MachineStatusSerializer
    filterset_class = MachineStatusFilter
    required_roles = {'POST': User.TECHNICIAN}

    def create(self, request, *args, **kwargs):
        serializer = MachineStatusInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        changed_by = request.user
        if data.get('changed_by') is not None:
            changed_by = User.objects.filter(pk=data['changed_by']).first()
            if changed_by is None:
                raise ValidationError('Unknown user in changed_by')

        record = services.set_status(data['machine'], data['status'], changed_by)
        return Response(MachineStatusSerializer(record).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
def current_machine_status(request, machine_id):
    """Current status of a machine; ``offline`` if none was ever recorded."""
    return Response(MachineStatusSerializer(services.current_status(machine_id)).data)


@api_view(['GET'])
def machine_status_history(request, machine_id):
    limit = settings.MONITORING['STATUS_HISTORY_LIMIT']
    history = services.status_history(machine_id, limit)
    return Response(MachineStatusSerializer(history, many=True).data)


class AlertListView(RoleRequiredMixin, generics.ListCreateAPIView):
    queryset = Alert.objects.select_related('machine').order_by('-created_at', '-id')
    serializer_class = AlertSerializer
    filterset_class = AlertFilter
    required_roles = {'POST': User.TECHNICIAN}

    def perform_create(self, serializer):
        try:
            alert = serializer.save()
        except IntegrityError:
            raise ConflictError('An active alert of this type already exists for this machine')
        logger.info("Manual %s alert %s raised on machine %s", alert.type, alert.pk, alert.machine_id)


class ActiveAlertListView(generics.ListAPIView):
    queryset = Alert.objects.select_related('machine').filter(is_active=True).order_by('-created_at', '-id')
    serializer_class = AlertSerializer
    filterset_class = AlertFilter


class MachineAlertListView(generics.ListAPIView):
    serializer_class = AlertSerializer
    filterset_class = AlertFilter

    def get_queryset(self):
        return (
            Alert.objects.select_related('machine')
            .filter(machine_id=self.kwargs['machine_id'])
            .order_by('-created_at', '-id')
        )


@api_view(['GET'])
def alert_detail(request, pk):
    alert = services.get_or_404(Alert, pk, 'Alert')
    return Response(AlertSerializer(alert).data)


@api_view(['PATCH'])
@permission_classes([IsTechnician])
def resolve_alert(request, pk):
    """
    Mark an alert resolved. Already resolved alerts are returned as they
    are.
    """
    alert = services.resolve_alert(pk)
    return Response(AlertSerializer(alert).data)
