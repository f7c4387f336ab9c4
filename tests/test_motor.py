import pytest

from motorpid.motor import (
    Board,
    Direction,
    EncoderCounter,
    FilterMode,
    Motor,
    arduino_map,
)


def make_motor():
    board = Board()
    encoder = EncoderCounter()
    motor = Motor(board, 7, 8, 9, 2, 3, encoder)
    return motor, board, encoder


def test_arduino_map_endpoints():
    assert arduino_map(1000, 0, 1000, 0, 255) == 255
    assert arduino_map(0, 0, 1000, 0, 255) == 0


def test_arduino_map_truncates_toward_zero():
    assert arduino_map(-3, 0, 2, 0, 1) == -1


def test_init_sets_pin_modes():
    motor, board, _ = make_motor()
    motor.init()
    assert board.modes == {7: 1, 8: 1, 9: 1, 2: 0, 3: 0}


def test_control_forward_full_power():
    motor, board, _ = make_motor()
    motor.control(Direction.FORWARD, 1000)
    assert board.digital[7] == 1
    assert board.digital[8] == 0
    assert board.pwm[9] == 255


def test_control_reverse():
    motor, board, _ = make_motor()
    motor.control(Direction.REVERSE, 1000)
    assert (board.digital[7], board.digital[8]) == (0, 1)
    assert board.pwm[9] == 255


def test_control_stop_ignores_power():
    motor, board, _ = make_motor()
    motor.control(Direction.STOP, 1000)
    assert (board.digital[7], board.digital[8], board.pwm[9]) == (0, 0, 0)


def test_control_zero_power_gives_zero_duty():
    motor, board, _ = make_motor()
    motor.control(Direction.FORWARD, 0)
    assert board.pwm[9] == 0


def test_rpm_without_elapsed_time_returns_cached():
    motor, board, encoder = make_motor()
    encoder.count = 500
    assert motor.rpm() == 0.0


def test_rpm_measures_speed():
    motor, board, encoder = make_motor()
    encoder.count = 4224
    board.advance(1000)
    assert motor.rpm() == pytest.approx(600.0)


def test_rpm_is_proportional_to_pulses():
    first, board1, enc1 = make_motor()
    second, board2, enc2 = make_motor()
    enc1.count = 1000
    enc2.count = 2000
    board1.advance(500)
    board2.advance(500)
    assert second.rpm() == pytest.approx(2 * first.rpm())


def test_rpm_below_one_is_zero():
    motor, board, encoder = make_motor()
    encoder.count = 1
    board.advance(1000)
    assert motor.rpm() == 0.0


def test_rpm_cached_within_sample_time():
    motor, board, encoder = make_motor()
    encoder.count = 4224
    board.advance(1000)
    measured = motor.rpm()
    encoder.count += 10000
    board.advance(5)
    assert motor.rpm() == measured


def test_reset_counter_clears_state():
    motor, board, encoder = make_motor()
    encoder.count = 4224
    board.advance(1000)
    motor.rpm()
    motor.reset_counter()
    assert encoder.read() == 0
    assert motor.filtered_val == 0.0
    assert motor.last_measure == 0
    assert motor.last_enc == 0


def test_filter_median_averages_nonzero_samples():
    motor, _, _ = make_motor()
    assert motor.filter_median(5.0) == pytest.approx(5.0)
    assert motor.filter_median(7.0) == pytest.approx(6.0)
    assert motor.filter_median(0.0) == pytest.approx(6.0)


def test_filter_lowpass_small_change_moves_slowly():
    motor, _, _ = make_motor()
    motor.filtered_val = 100.0
    result = motor.filter_lowpass(110.0)
    assert 100.0 < result < 110.0
    assert abs(result - 100.0) < abs(result - 110.0)


def test_filter_lowpass_large_jump_moves_faster():
    motor, _, _ = make_motor()
    motor.filtered_val = 100.0
    small_step = motor.filter_lowpass(110.0) - 100.0
    large_step = motor.filter_lowpass(300.0) - 100.0
    assert large_step / 200.0 > small_step / 10.0


def test_filter_lowpass_zero_stays_zero():
    motor, _, _ = make_motor()
    assert motor.filter_lowpass(0.0) == 0.0


def test_configure_sets_mode_and_frequency():
    motor, _, _ = make_motor()
    motor.configure(15e3, FilterMode.LOW_PASS)
    assert motor.rpm_mode is FilterMode.LOW_PASS
    assert motor.pwm_frequency == 15e3


def test_configure_rejects_unknown_filter():
    motor, _, _ = make_motor()
    with pytest.raises(ValueError):
        motor.configure(1000, 7)


def test_low_pass_mode_smooths_first_reading():
    plain, board1, enc1 = make_motor()
    smooth, board2, enc2 = make_motor()
    smooth.configure(15e3, FilterMode.LOW_PASS)
    enc1.count = enc2.count = 4224
    board1.advance(1000)
    board2.advance(1000)
    raw = plain.rpm()
    filtered = smooth.rpm()
    assert 0.0 < filtered < raw


def test_encoder_tick_and_board_interrupt():
    board = Board()
    encoder = EncoderCounter()
    board.attach_interrupt(2, encoder.tick)
    board.trigger(2)
    board.trigger(2)
    board.trigger(3)
    assert encoder.read() == 2


def test_board_delay_advances_internal_clock():
    board = Board()
    board.delay(25)
    board.advance(5)
    assert board.millis() == 30