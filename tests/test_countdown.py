from datetime import timedelta

import pytest

from eclipse_commander.countdown import CountdownEngine, eclipse_phase_at
from eclipse_commander.data_model import AlertKind, EclipsePhase
from eclipse_commander.sequences import generate_sequence


def seconds(value):
    return timedelta(seconds=value)


def run_ticks(engine, start, stop, interval=1.0):
    """Tick from ``start`` to ``stop`` inclusive and collect every alert."""
    alerts = []
    now = start
    while now <= stop:
        alerts.extend(engine.tick(now).alerts)
        now += seconds(interval)
    return alerts


@pytest.fixture
def total_sequence(total_contacts, refractor_system, cmos_preferences):
    return generate_sequence(total_contacts, refractor_system, cmos_preferences)


@pytest.fixture
def engine(total_contacts, total_sequence):
    engine = CountdownEngine(total_contacts, total_sequence)
    engine.start()
    return engine


@pytest.fixture
def partial_engine(partial_contacts, refractor_system):
    engine = CountdownEngine(partial_contacts, generate_sequence(partial_contacts, refractor_system))
    engine.start()
    return engine


class TestPhases:
    def test_total_boundaries_belong_to_later_phase(self, total_contacts):
        c = total_contacts
        tiny = timedelta(microseconds=1)
        assert eclipse_phase_at(c, c.c1 - tiny) == EclipsePhase.PRE
        assert eclipse_phase_at(c, c.c1) == EclipsePhase.PARTIAL_BEFORE
        assert eclipse_phase_at(c, c.c2) == EclipsePhase.TOTALITY
        assert eclipse_phase_at(c, c.c3 - tiny) == EclipsePhase.TOTALITY
        assert eclipse_phase_at(c, c.c3) == EclipsePhase.PARTIAL_AFTER
        assert eclipse_phase_at(c, c.c4) == EclipsePhase.POST

    def test_partial_only(self, partial_contacts):
        c = partial_contacts
        assert eclipse_phase_at(c, c.c1 - seconds(1)) == EclipsePhase.PRE
        assert eclipse_phase_at(c, c.max_time) == EclipsePhase.PARTIAL
        assert eclipse_phase_at(c, c.c4) == EclipsePhase.POST

    def test_naive_time_is_utc(self, total_contacts):
        naive = (total_contacts.c2 + seconds(1)).replace(tzinfo=None)
        assert eclipse_phase_at(total_contacts, naive) == EclipsePhase.TOTALITY


class TestState:
    def test_tick_requires_start(self, total_contacts):
        engine = CountdownEngine(total_contacts)
        assert not engine.is_running
        with pytest.raises(RuntimeError):
            engine.tick(total_contacts.c1)

    def test_filter_required_outside_totality(self, engine, total_contacts):
        assert engine.state_at(total_contacts.c2 - seconds(1)).filter_required
        assert not engine.state_at(total_contacts.c2).filter_required
        assert engine.state_at(total_contacts.c3).filter_required

    def test_active_and_next_step(self, engine, total_contacts):
        state = engine.state_at(total_contacts.c2 + seconds(10))
        assert state.active_step.id == 'chromosphere'
        assert state.next_step.id == 'inner-corona'

        state = engine.state_at(total_contacts.c2 - seconds(2))
        assert state.active_step.id == 'c2-baily'
        assert state.next_step.id == 'chromosphere'

    def test_no_active_step_between_steps(self, engine, total_contacts):
        state = engine.state_at(total_contacts.c1 + seconds(600))
        assert state.active_step is None
        assert state.next_step.id == 'partial-mid'

    def test_time_remaining(self, engine, total_contacts):
        state = engine.state_at(total_contacts.c2 - seconds(65.5))
        assert state.next_boundary == 'C2'
        assert state.next_boundary_time == total_contacts.c2
        assert state.time_remaining_ms == 65500
        assert state.countdown_text == '01:05'

    def test_after_last_contact(self, engine, total_contacts):
        state = engine.tick(total_contacts.c4 + seconds(10)).state
        assert state.current_phase == EclipsePhase.POST
        assert state.next_boundary is None
        assert state.time_remaining_ms == 0
        assert state.countdown_text == '00:00:00'
        assert state.next_step is None

    def test_at_maximum_for_partial_only(self, partial_engine, partial_contacts):
        assert partial_engine.state_at(partial_contacts.max_time).at_maximum
        assert partial_engine.state_at(partial_contacts.max_time - seconds(60)).at_maximum
        assert not partial_engine.state_at(partial_contacts.max_time + seconds(61)).at_maximum

    def test_no_at_maximum_during_totality(self, engine, total_contacts):
        assert not engine.state_at(total_contacts.max_time).at_maximum

    def test_partial_next_boundary_is_maximum(self, partial_engine, partial_contacts):
        state = partial_engine.state_at(partial_contacts.c1 + seconds(1))
        assert state.current_phase == EclipsePhase.PARTIAL
        assert state.next_boundary == 'MAX'


class TestAlerts:
    def test_each_lead_time_fires_once(self, engine, total_contacts):
        c2 = total_contacts.c2
        alerts = run_ticks(engine, c2 - seconds(70), c2 + seconds(10))
        c2_alerts = [a for a in alerts if a.target_id == 'C2']
        assert [a.lead_seconds for a in c2_alerts] == [60, 30, 10, 5, 0]

    def test_boundary_alert_content(self, engine, total_contacts):
        c2 = total_contacts.c2
        alerts = run_ticks(engine, c2 - seconds(12), c2)
        by_lead = {a.lead_seconds: a for a in alerts if a.target_id == 'C2'}
        assert by_lead[10].kind == AlertKind.LEAD_TIME_WARNING
        assert by_lead[10].message == 'Second contact, totality begins in 10 seconds - remove solar filter'
        assert by_lead[0].kind == AlertKind.BOUNDARY_REACHED
        assert by_lead[0].message == 'Second contact, totality begins: now - remove solar filter'
        assert by_lead[0].boundary == 'C2'
        assert by_lead[0].target_time == c2

    def test_no_alerts_after_boundary_passes(self, engine, total_contacts):
        c2 = total_contacts.c2
        run_ticks(engine, c2 - seconds(70), c2)
        later = run_ticks(engine, c2 + seconds(1), c2 + seconds(4))
        assert not [a for a in later if a.target_id == 'C2']

    def test_step_alerts(self, engine, total_contacts):
        c2 = total_contacts.c2
        alerts = run_ticks(engine, c2 - seconds(35), c2 - seconds(30))
        filter_alerts = [a for a in alerts if a.target_id == 'step:c2-filter-off']
        assert [a.lead_seconds for a in filter_alerts] == [5, 0]
        assert filter_alerts[-1].message == 'Remove Solar Filter: now'
        assert filter_alerts[-1].step.id == 'c2-filter-off'

    def test_step_on_boundary_merged(self, engine, total_contacts):
        c3 = total_contacts.c3
        alerts = engine.tick(c3).alerts
        assert not [a for a in alerts if a.target_id == 'step:c3-baily']
        c3_alert = next(a for a in alerts if a.target_id == 'C3')
        assert c3_alert.lead_seconds == 0
        assert c3_alert.step.id == 'c3-baily'
        assert c3_alert.message.endswith('reapply solar filter')

    def test_stall_delivers_latest_fresh_lead_only(self, engine, total_contacts):
        c2 = total_contacts.c2
        fired = []
        for offset in (-45, -9, -5, 0):
            result = engine.tick(c2 + seconds(offset))
            fired.extend(a.lead_seconds for a in result.alerts if a.target_id == 'C2')
            assert result.state.next_boundary == 'C2' or offset == 0
        assert fired == [10, 5, 0]

    def test_stale_lead_dropped(self, engine, total_contacts):
        c2 = total_contacts.c2
        assert not [a for a in engine.tick(c2 - seconds(8)).alerts if a.target_id == 'C2']
        assert [a.lead_seconds for a in engine.tick(c2 - seconds(5)).alerts
                if a.target_id == 'C2'] == [5]

    def test_stall_keeps_projection_exact(self, engine, total_contacts):
        state = engine.tick(total_contacts.c2 - seconds(45)).state
        assert state.next_boundary == 'C2'
        assert state.time_remaining_ms == 45000

    def test_restart_long_after_is_silent(self, total_contacts, total_sequence):
        engine = CountdownEngine(total_contacts, total_sequence)
        engine.start()
        assert engine.tick(total_contacts.c4 + seconds(3600)).alerts == []

    def test_stop_rearms_alerts(self, engine, total_contacts):
        c2 = total_contacts.c2
        run_ticks(engine, c2 - seconds(12), c2 - seconds(10))
        engine.stop()
        assert not engine.is_running
        engine.start()
        alerts = engine.tick(c2 - seconds(10)).alerts
        assert [a.lead_seconds for a in alerts if a.target_id == 'C2'] == [10]

    def test_reset_keeps_running(self, engine, total_contacts):
        c2 = total_contacts.c2
        engine.tick(c2 - seconds(10))
        assert not [a for a in engine.tick(c2 - seconds(10)).alerts if a.target_id == 'C2']
        engine.reset()
        assert engine.is_running
        assert [a.lead_seconds for a in engine.tick(c2 - seconds(10)).alerts
                if a.target_id == 'C2'] == [10]

    def test_custom_lead_times(self, total_contacts):
        engine = CountdownEngine(total_contacts, lead_times_s=(0, 30, 10, 30))
        assert engine.lead_times_s == (30, 10, 0)
        engine.start()
        c2 = total_contacts.c2
        alerts = run_ticks(engine, c2 - seconds(40), c2)
        assert [a.lead_seconds for a in alerts if a.target_id == 'C2'] == [30, 10, 0]

    def test_partial_maximum_alert(self, partial_engine, partial_contacts):
        alerts = partial_engine.tick(partial_contacts.max_time).alerts
        max_alert = next(a for a in alerts if a.target_id == 'MAX')
        assert max_alert.message == 'Maximum eclipse: now'
        assert max_alert.kind == AlertKind.BOUNDARY_REACHED
