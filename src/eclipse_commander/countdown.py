"""
Countdown engine: clock-driven eclipse phase tracking and alerts.

The engine holds no timer of its own. The host calls ``tick(now)`` on its
own schedule (nominally 1 Hz); phase, active/next step and time remaining
are re-derived from the contact times on every tick. The only state kept
between ticks is the set of alerts already fired.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence, Set, Tuple

from .constants import (
    ALERT_LEAD_TIMES_S,
    ALERT_STALE_TOLERANCE_S,
    AT_MAXIMUM_WINDOW_S,
)
from .data_model import (
    AlertEvent,
    AlertKind,
    ContactTimes,
    CountdownState,
    EclipsePhase,
    ExposureSequenceStep,
)
from .utils import ensure_utc

logger = logging.getLogger(__name__)

BOUNDARY_LABELS = {
    'C1': 'First contact',
    'C2': 'Second contact, totality begins',
    'C3': 'Third contact, totality ends',
    'C4': 'Last contact',
    'MAX': 'Maximum eclipse',
}

FILTER_HINTS = {
    'C2': 'remove solar filter',
    'C3': 'reapply solar filter',
}


def eclipse_phase_at(contacts: ContactTimes, now: datetime) -> EclipsePhase:
    """Phase of the eclipse at ``now``. Boundaries belong to the later phase."""
    now = ensure_utc(now)
    if now < contacts.c1:
        return EclipsePhase.PRE
    if now >= contacts.c4:
        return EclipsePhase.POST
    if not contacts.is_total or contacts.c2 is None or contacts.c3 is None:
        return EclipsePhase.PARTIAL
    if now < contacts.c2:
        return EclipsePhase.PARTIAL_BEFORE
    if now < contacts.c3:
        return EclipsePhase.TOTALITY
    return EclipsePhase.PARTIAL_AFTER


@dataclass(frozen=True)
class _AlertTarget:
    target_id: str
    time: datetime
    boundary: Optional[str] = None
    step: Optional[ExposureSequenceStep] = None

    @property
    def label(self) -> str:
        if self.boundary is not None:
            return BOUNDARY_LABELS.get(self.boundary, self.boundary)
        return self.step.display_name


@dataclass
class TickResult:
    """State projection plus the alerts fired on this tick."""
    state: CountdownState
    alerts: List[AlertEvent] = field(default_factory=list)


class CountdownEngine:
    """
    Single-session countdown state machine.

    Parameters
    ----------
    contact_times : ContactTimes
        Contacts for the session (read-only).
    sequence : sequence of ExposureSequenceStep
        Capture plan in chronological order (read-only, not re-sorted).
    lead_times_s : tuple of int
        Alert lead times in seconds before each target.
    stale_tolerance_s : float
        How late an alert may be delivered after its lead time passed before
        it is considered stale and dropped.

    Notes
    -----
    Each (target, lead time) pair fires at most once until ``reset`` or
    ``stop``. If a tick arrives after several lead times have passed (a
    stalled host), those lead times are marked fired and only the most
    recent one is delivered, and only if it is still fresh.
    """

    def __init__(
        self,
        contact_times: ContactTimes,
        sequence: Sequence[ExposureSequenceStep] = (),
        lead_times_s: Tuple[int, ...] = ALERT_LEAD_TIMES_S,
        stale_tolerance_s: float = ALERT_STALE_TOLERANCE_S,
    ):
        self.contact_times = contact_times
        self.sequence = list(sequence)
        self.lead_times_s = tuple(sorted(set(lead_times_s), reverse=True))
        self.stale_tolerance_s = stale_tolerance_s
        self._fired: Set[Tuple[str, int]] = set()
        self._running = False
        self._targets = self._build_targets()

    def _build_targets(self) -> List[_AlertTarget]:
        targets = []
        boundary_times = {}
        for name, instant in self.contact_times.boundaries():
            boundary_times[instant] = name
            targets.append(_AlertTarget(target_id=name, time=instant, boundary=name))

        for step in self.sequence:
            # A step starting on a contact is announced by the contact's alert
            if step.start_time in boundary_times:
                continue
            targets.append(_AlertTarget(target_id=f"step:{step.id}", time=step.start_time, step=step))

        return sorted(targets, key=lambda t: t.time)

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self):
        self._running = True
        logger.info("Countdown started")

    def stop(self):
        """Stop ticking and discard fired-alert markers."""
        self._running = False
        self._fired.clear()
        logger.info("Countdown stopped")

    def reset(self):
        """Re-arm every alert without changing the running state."""
        self._fired.clear()

    def _step_for_boundary(self, target: _AlertTarget) -> Optional[ExposureSequenceStep]:
        for step in self.sequence:
            if step.start_time == target.time:
                return step
        return None

    def state_at(self, now: datetime) -> CountdownState:
        """Pure projection of the session onto ``now`` (no alerts)."""
        now = ensure_utc(now)
        contacts = self.contact_times
        phase = eclipse_phase_at(contacts, now)

        active_step = None
        next_step = None
        for step in self.sequence:
            if step.contains(now):
                active_step = step
            if next_step is None and step.start_time > now:
                next_step = step

        next_boundary, next_time = None, None
        for name, instant in contacts.boundaries():
            if instant > now:
                next_boundary, next_time = name, instant
                break

        remaining_ms = int((next_time - now).total_seconds() * 1000) if next_time else 0

        at_maximum = (
            phase == EclipsePhase.PARTIAL
            and abs((now - contacts.max_time).total_seconds()) <= AT_MAXIMUM_WINDOW_S
        )

        return CountdownState(
            now=now,
            current_phase=phase,
            active_step=active_step,
            next_step=next_step,
            next_boundary=next_boundary,
            next_boundary_time=next_time,
            time_remaining_ms=remaining_ms,
            filter_required=phase != EclipsePhase.TOTALITY,
            at_maximum=at_maximum,
        )

    def _alert_message(self, target: _AlertTarget, lead: int) -> str:
        hint = FILTER_HINTS.get(target.boundary)
        if lead == 0:
            text = f"{target.label}: now"
        else:
            text = f"{target.label} in {lead} seconds"
        if hint:
            text = f"{text} - {hint}"
        return text

    def _collect_alerts(self, now: datetime) -> List[AlertEvent]:
        alerts = []
        for target in self._targets:
            seconds_until = (target.time - now).total_seconds()
            pending = [lead for lead in self.lead_times_s
                       if seconds_until <= lead and (target.target_id, lead) not in self._fired]
            if not pending:
                continue

            for lead in pending:
                self._fired.add((target.target_id, lead))

            lead = min(pending)
            if seconds_until <= lead - self.stale_tolerance_s:
                logger.debug(f"Dropping stale alerts {pending} for {target.target_id}")
                continue

            step = target.step if target.step is not None else self._step_for_boundary(target)
            alerts.append(AlertEvent(
                kind=AlertKind.BOUNDARY_REACHED if lead == 0 else AlertKind.LEAD_TIME_WARNING,
                lead_seconds=lead,
                target_id=target.target_id,
                target_time=target.time,
                message=self._alert_message(target, lead),
                boundary=target.boundary,
                step=step,
            ))
        return alerts

    def tick(self, now: datetime) -> TickResult:
        """
        Advance the engine to ``now``.

        Raises
        ------
        RuntimeError
            If the engine has not been started.
        """
        if not self._running:
            raise RuntimeError("CountdownEngine.tick() called while stopped; call start() first")

        now = ensure_utc(now)
        state = self.state_at(now)
        alerts = self._collect_alerts(now)
        for alert in alerts:
            logger.info(f"Alert: {alert.message}")
        return TickResult(state=state, alerts=alerts)
