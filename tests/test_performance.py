import pytest

from motorpid.performance import (
    Criteria,
    Performance,
    format_criteria,
    format_csv,
    format_performance,
    format_teleplot,
    init_performance,
    meet_criteria,
    reject,
)


def test_init_performance_fills_criteria():
    system, criteria = init_performance(350, 2, 25, 0.1, 0.3)
    assert criteria == Criteria(
        overshoot=25, final_error=2, time_rise=0.1, time_settle=0.3, setpoint=350
    )
    assert system == Performance()
    assert system.cached == [0.0] * 10


def test_steady_signal_meets_criteria_after_full_cache():
    system, criteria = init_performance(350, 2, 25, 0.1, 0.3)
    results = [system.evaluate(criteria, 350.0, 100) for _ in range(10)]
    assert results[-1] is True
    assert results[1] is False
    assert system.final_val == pytest.approx(350.0)
    assert system.final_error == pytest.approx(0.0)
    assert system.overshoot == pytest.approx(0.0)
    assert system.counter == 0


def test_settle_time_recorded_on_entering_band():
    system, criteria = init_performance(200, 2, 25, 0.1, 0.3)
    system.evaluate(criteria, 200.0, 150)
    assert system.time_settle == pytest.approx(0.15)
    assert system.flag_settle
    system.evaluate(criteria, 201.0, 400)
    assert system.time_settle == pytest.approx(0.15)


def test_leaving_band_resets_settle_time_on_return():
    system, criteria = init_performance(200, 2, 25, 0.1, 0.3)
    system.evaluate(criteria, 200.0, 100)
    system.evaluate(criteria, 300.0, 200)
    assert not system.flag_settle
    system.evaluate(criteria, 200.0, 500)
    assert system.time_settle == pytest.approx(0.5)


def test_rise_band_sets_timer():
    system, criteria = init_performance(200, 2, 25, 0.1, 0.3)
    system.evaluate(criteria, 100.0, 42)
    assert system.timer == 42
    assert system.time_rise == 0.0


def test_highest_value_tracked():
    system, criteria = init_performance(200, 2, 25, 0.1, 0.3)
    for v in (50.0, 250.0, 180.0):
        system.evaluate(criteria, v, 10)
    assert system.highest_val == 250.0
    assert system.overshoot > 0


def test_meet_criteria_and_reject():
    criteria = Criteria(
        overshoot=25, final_error=2, time_rise=0.1, time_settle=0.3, setpoint=350
    )
    good = Performance(time_settle=0.2)
    slow = Performance(time_settle=0.5)
    assert meet_criteria(good, criteria)
    assert not reject(good, criteria)
    assert not meet_criteria(slow, criteria)
    assert reject(slow, criteria)
    assert not meet_criteria(Performance(overshoot=30), criteria)
    assert not reject(Performance(overshoot=30), criteria)


def test_format_csv_and_teleplot():
    assert format_csv(1.5, 2) == "1.50,2.00\n"
    assert format_teleplot(350, 12.345) == ">setpoint:350.00\n>signal:12.35\n"


def test_format_performance_invalid_and_inf():
    system = Performance(time_rise=0.0, time_settle=9.0)
    text = format_performance(system, Criteria(), 1)
    lines = text.splitlines()
    assert lines[0] == ' {"evaluation":{'
    assert '"time rise":"invalid",' in lines
    assert '"time settle":"inf"' in lines
    assert lines[-1] == "inf"


def test_format_performance_values():
    system = Performance(final_error=1.25, final_val=348.75, time_settle=0.25)
    lines = format_performance(system, Criteria(), 1).splitlines()
    assert '"steady state error":"1.25",' in lines
    assert '"steady state value":"348.75",' in lines
    assert lines[-1] == "0.25"


def test_format_criteria():
    criteria = Criteria(
        overshoot=25, final_error=2, time_rise=0.1, time_settle=0.3, setpoint=350
    )
    lines = format_criteria(criteria).splitlines()
    assert lines[0] == ' {"criteria":{'
    assert '"steady state value":"350.00",' in lines
    assert '"time rise":"0.10"' in lines
    assert lines[-1] == "}"