"""
Status and alert evaluation for incoming sensor readings.

Every new reading is classified channel by channel against a threshold
policy. The outcome drives two append/flip-only side effects:

  - Alerts: at most one active alert per (machine, alert type). A breach
    with no active alert raises one; a return to normal resolves it.
  - Machine status: a critical channel moves the machine to ``error``;
    once no channel is critical an ``error`` machine goes back ``online``.

Evaluations for the same machine are serialized by locking the machine row.
The conditional unique constraint on ``Alert`` backs this up on databases
where ``select_for_update`` is a no-op.
"""
import logging
from dataclasses import dataclass, field
from datetime import timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from .models import Alert, Machine, MachineStatus, SensorData

logger = logging.getLogger(__name__)

NORMAL = 'normal'
WARNING = 'warning'
CRITICAL = 'critical'

LEVEL_RANK = {NORMAL: 0, WARNING: 1, CRITICAL: 2}

SEVERITY_FOR_LEVEL = {
    WARNING: Alert.MEDIUM,
    CRITICAL: Alert.CRITICAL,
}

# alert type, reading fields, unit
CHANNEL_GROUPS = (
    (Alert.TEMPERATURE, SensorData.TEMPERATURE_FIELDS, '°C'),
    (Alert.SPEED, SensorData.SPEED_FIELDS, 'rpm'),
)


@dataclass(frozen=True)
class ThresholdBand:
    warning: float
    critical: float

    def classify(self, value: float) -> str:
        if value > self.critical:
            return CRITICAL
        if value > self.warning:
            return WARNING
        return NORMAL

    def limit(self, level: str) -> float:
        return self.critical if level == CRITICAL else self.warning


@dataclass(frozen=True)
class ThresholdPolicy:
    temperature: ThresholdBand
    speed: ThresholdBand
    door_open_grace: timedelta

    @classmethod
    def from_settings(cls, config=None):
        config = config or settings.MONITORING
        bands = config['THRESHOLDS']
        return cls(
            temperature=ThresholdBand(**bands['temperature']),
            speed=ThresholdBand(**bands['speed']),
            door_open_grace=timedelta(seconds=config['DOOR_OPEN_GRACE_SECONDS']),
        )

    def band_for(self, alert_type: str) -> ThresholdBand:
        return getattr(self, alert_type)


@dataclass(frozen=True)
class ChannelReading:
    """Worst channel of a group for one reading."""
    alert_type: str
    field: str
    value: float
    level: str


@dataclass
class Evaluation:
    reading: SensorData
    channels: dict = field(default_factory=dict)
    raised: list = field(default_factory=list)
    resolved: list = field(default_factory=list)
    status: MachineStatus | None = None
    superseded: bool = False

    @property
    def any_critical(self) -> bool:
        return any(channel.level == CRITICAL for channel in self.channels.values())


def classify_reading(reading, policy):
    """
    Return the worst channel of each monitored group, keyed by alert type.

    Ties keep the first channel in field order, so ``temperature1`` wins
    over ``temperature3`` at the same level.
    """
    channels = {}
    for alert_type, fields, _unit in CHANNEL_GROUPS:
        band = policy.band_for(alert_type)
        worst = None
        for name in fields:
            value = float(getattr(reading, name) or 0)
            level = band.classify(value)
            if worst is None or LEVEL_RANK[level] > LEVEL_RANK[worst.level]:
                worst = ChannelReading(alert_type, name, value, level)
        channels[alert_type] = worst
    return channels


def current_status_value(machine_id):
    latest = (
        MachineStatus.objects.filter(machine_id=machine_id)
        .order_by('-timestamp', '-id')
        .values_list('status', flat=True)
        .first()
    )
    return latest or MachineStatus.OFFLINE


def door_open_since(reading, door_field):
    """
    Timestamp from which ``door_field`` has been continuously open up to
    ``reading``, or None if it is closed in ``reading``.
    """
    if not getattr(reading, door_field):
        return None
    history = SensorData.objects.filter(machine_id=reading.machine_id, timestamp__lte=reading.timestamp)
    last_closed = (
        history.filter(**{door_field: False})
        .order_by('-timestamp', '-id')
        .values_list('timestamp', flat=True)
        .first()
    )
    opened = history.filter(**{door_field: True})
    if last_closed is not None:
        opened = opened.filter(timestamp__gt=last_closed)
    return opened.order_by('timestamp', 'id').values_list('timestamp', flat=True).first() or reading.timestamp


def is_newest(reading):
    """True if no stored reading of the machine sorts after ``reading`` by (timestamp, id)."""
    newer = Q(timestamp__gt=reading.timestamp) | Q(timestamp=reading.timestamp, id__gt=reading.pk)
    return not SensorData.objects.filter(newer, machine_id=reading.machine_id).exists()


def _active_alerts(machine_id):
    return {alert.type: alert for alert in Alert.objects.filter(machine_id=machine_id, is_active=True)}


def _raise_alert(machine_id, alert_type, severity, message):
    """Create an active alert; None if a concurrent evaluation got there first."""
    try:
        with transaction.atomic():
            return Alert.objects.create(
                machine_id=machine_id,
                type=alert_type,
                severity=severity,
                message=message,
            )
    except IntegrityError:
        logger.info("Active %s alert already exists for machine %s", alert_type, machine_id)
        return None


def _resolve(alert, now):
    alert.is_active = False
    alert.resolved_at = now
    alert.save(update_fields=['is_active', 'resolved_at'])
    return alert


def _evaluate_channels(evaluation, active, policy, now):
    reading = evaluation.reading
    for alert_type, _fields, unit in CHANNEL_GROUPS:
        channel = evaluation.channels[alert_type]
        existing = active.get(alert_type)
        if channel.level == NORMAL:
            if existing is not None:
                evaluation.resolved.append(_resolve(existing, now))
            continue
        if existing is not None:
            continue
        band_limit = policy.band_for(alert_type).limit(channel.level)
        message = (
            f"{channel.field} at {channel.value:g}{unit} exceeds "
            f"{channel.level} threshold of {band_limit:g}{unit}"
        )
        alert = _raise_alert(reading.machine_id, alert_type, SEVERITY_FOR_LEVEL[channel.level], message)
        if alert is not None:
            evaluation.raised.append(alert)


def _evaluate_doors(evaluation, active, status, policy, now):
    reading = evaluation.reading
    existing = active.get(Alert.DOOR)
    open_doors = [name for name in SensorData.DOOR_FIELDS if getattr(reading, name)]

    if not open_doors:
        if existing is not None:
            evaluation.resolved.append(_resolve(existing, now))
        return

    if existing is not None or status != MachineStatus.ONLINE:
        return

    for door_field in open_doors:
        since = door_open_since(reading, door_field)
        open_for = reading.timestamp - since
        if open_for >= policy.door_open_grace:
            door_number = door_field[len('door'):-len('_state')]
            message = f"Door {door_number} open for {int(open_for.total_seconds())}s while machine is online"
            alert = _raise_alert(reading.machine_id, Alert.DOOR, Alert.LOW, message)
            if alert is not None:
                evaluation.raised.append(alert)
            return


def _next_status(evaluation, status):
    if evaluation.any_critical and status not in (MachineStatus.ERROR, MachineStatus.MAINTENANCE):
        return MachineStatus.ERROR
    if not evaluation.any_critical and status == MachineStatus.ERROR:
        return MachineStatus.ONLINE
    return None


def evaluate_reading(reading, policy=None):
    """
    Apply the threshold policy to a freshly stored reading.

    Locks the machine row for the duration of the evaluation so two
    readings for one machine cannot both observe "no active alert".
    A reading that is older than the newest stored one changes nothing and
    comes back with ``superseded`` set.

    Returns:
        Evaluation with the alerts raised and resolved and the status row
        appended, if any.
    """
    policy = policy or ThresholdPolicy.from_settings()
    now = timezone.now()

    with transaction.atomic():
        Machine.objects.select_for_update().only('id').get(pk=reading.machine_id)

        if not is_newest(reading):
            logger.info("Machine %s reading %s is older than the latest one, not evaluated", reading.machine_id, reading.pk)
            return Evaluation(reading=reading, superseded=True)

        evaluation = Evaluation(reading=reading, channels=classify_reading(reading, policy))
        active = _active_alerts(reading.machine_id)
        status = current_status_value(reading.machine_id)

        _evaluate_channels(evaluation, active, policy, now)
        _evaluate_doors(evaluation, active, status, policy, now)

        next_status = _next_status(evaluation, status)
        if next_status is not None:
            evaluation.status = MachineStatus.objects.create(
                machine_id=reading.machine_id,
                status=next_status,
                changed_by=None,
            )

    if evaluation.raised or evaluation.resolved or evaluation.status:
        logger.info(
            "Machine %s reading %s: raised %s, resolved %s, status %s",
            reading.machine_id,
            reading.pk,
            [alert.type for alert in evaluation.raised],
            [alert.type for alert in evaluation.resolved],
            evaluation.status.status if evaluation.status else 'unchanged',
        )
    return evaluation
