"""
Domain operations behind the REST views.

Views stay thin: they parse the request, call one of these functions and
serialize what comes back. Every failure is raised as one of the typed
errors in ``monitoring.exceptions``.
"""
import logging

from django.contrib.auth import authenticate
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework_simplejwt.tokens import AccessToken

from .evaluator import evaluate_reading
from .exceptions import AuthenticationError, AuthorizationError, ConflictError, NotFoundError, ValidationError
from .models import Alert, Machine, MachineStatus, SensorData, User
from .permissions import role_satisfies

logger = logging.getLogger(__name__)


def get_or_404(model, pk, label=None):
    try:
        return model.objects.get(pk=pk)
    except (model.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"{label or model._meta.verbose_name.capitalize()} not found")


def delete_machine(machine_id):
    """Hard delete; readings, statuses and alerts go with the machine."""
    machine = get_or_404(Machine, machine_id, 'Machine')
    machine.delete()
    logger.info("Deleted machine %s", machine_id)


def default_reading(machine_id):
    """Unsaved all-zero reading reported for machines that never sent data."""
    return SensorData(machine_id=machine_id, timestamp=timezone.now())


def record_reading(validated_data, policy=None):
    """
    Store a sensor reading and run the alert evaluator on it.

    Returns:
        (reading, evaluation)
    """
    with transaction.atomic():
        reading = SensorData.objects.create(**validated_data)
        evaluation = evaluate_reading(reading, policy=policy)
    return reading, evaluation


def latest_reading(machine_id):
    """Newest reading for the machine, or None."""
    return (
        SensorData.objects.filter(machine_id=machine_id)
        .order_by('-timestamp', '-id')
        .first()
    )


def reading_history(machine_id, limit):
    return SensorData.objects.filter(machine_id=machine_id).order_by('-timestamp', '-id')[:limit]


def purge_readings():
    deleted, _ = SensorData.objects.all().delete()
    logger.warning("Purged %s sensor readings", deleted)
    return deleted


def set_status(machine_id, status, changed_by):
    machine = get_or_404(Machine, machine_id, 'Machine')
    if status not in dict(MachineStatus.STATUS_CHOICES):
        raise ValidationError(f"Invalid status '{status}'")
    record = MachineStatus.objects.create(machine=machine, status=status, changed_by=changed_by)
    logger.info("Machine %s set %s by %s", machine.pk, status, changed_by)
    return record


def current_status(machine_id):
    """
    Latest status row for an existing machine, or an unsaved ``offline``
    row stamped now when nothing was ever recorded.
    """
    machine = get_or_404(Machine, machine_id, 'Machine')
    status = (
        MachineStatus.objects.filter(machine=machine)
        .select_related('changed_by')
        .order_by('-timestamp', '-id')
        .first()
    )
    if status is None:
        status = MachineStatus(machine=machine, status=MachineStatus.OFFLINE, timestamp=timezone.now())
    return status


def status_history(machine_id, limit):
    return (
        MachineStatus.objects.filter(machine_id=machine_id)
        .select_related('changed_by')
        .order_by('-timestamp', '-id')[:limit]
    )


def resolve_alert(alert_id):
    """
    Flip an alert to resolved. Resolving twice is a no-op: the alert keeps
    its original ``resolved_at``.
    """
    with transaction.atomic():
        alert = Alert.objects.select_for_update().filter(pk=alert_id).first()
        if alert is None:
            raise NotFoundError('Alert not found')
        if alert.is_active:
            alert.is_active = False
            alert.resolved_at = timezone.now()
            alert.save(update_fields=['is_active', 'resolved_at'])
            logger.info("Resolved alert %s on machine %s", alert.pk, alert.machine_id)
    return alert


def _ensure_username_free(username, exclude_pk=None):
    taken = User.objects.filter(username=username)
    if exclude_pk is not None:
        taken = taken.exclude(pk=exclude_pk)
    if taken.exists():
        raise ConflictError('Username already exists')


def register_user(username, password, role=None, requested_by=None):
    """
    Create an account. Anyone may register a viewer; granting a higher role
    takes an admin.
    """
    role = role or User.VIEWER
    if role != User.VIEWER:
        caller_role = getattr(requested_by, 'role', None) if requested_by and requested_by.is_authenticated else None
        if not role_satisfies(caller_role, User.ADMIN):
            raise AuthorizationError('Only an admin can register privileged users')

    _ensure_username_free(username)
    try:
        with transaction.atomic():
            user = User.objects.create_user(username=username, password=password, role=role)
    except IntegrityError:
        # lost a race against a concurrent registration of the same name
        raise ConflictError('Username already exists')
    logger.info("Registered user %s with role %s", username, role)
    return user


def issue_token(user):
    token = AccessToken.for_user(user)
    token['username'] = user.username
    token['role'] = user.role
    return str(token)


def login(username, password):
    """
    Returns:
        dict with ``token``, ``userId``, ``username`` and ``role``
    """
    user = authenticate(username=username, password=password)
    if user is None:
        logger.info("Failed login for %s", username)
        raise AuthenticationError('Invalid credentials')
    return {
        'token': issue_token(user),
        'userId': user.pk,
        'username': user.username,
        'role': user.role,
    }


def change_password(user, current_password, new_password):
    if not user.check_password(current_password or ''):
        raise ValidationError('Current password is incorrect')
    if not new_password:
        raise ValidationError('New password is required')
    user.set_password(new_password)
    user.save(update_fields=['password'])
    logger.info("Password changed for user %s", user.pk)


def update_profile(user, username):
    if not username:
        raise ValidationError('Username is required')
    _ensure_username_free(username, exclude_pk=user.pk)
    user.username = username
    user.save(update_fields=['username'])
    return user


def update_user(user, changes):
    """Admin patch of any user field; a new password is hashed."""
    if 'username' in changes:
        _ensure_username_free(changes['username'], exclude_pk=user.pk)
    password = changes.pop('password', None)
    for name, value in changes.items():
        setattr(user, name, value)
    if password:
        user.set_password(password)
    user.save()
    return user


def delete_user(user_id):
    user = get_or_404(User, user_id, 'User')
    user.delete()
    logger.info("Deleted user %s", user_id)
