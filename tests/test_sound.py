import math
import struct

import numpy as np
import pytest

from neonchase.sound import (
    MIX_SAMPLES,
    RAMP_STEP,
    Listener,
    Mixer,
    PlayingSample,
    Ramp,
    Sample,
    compute_pan_from_listener_and_position,
    compute_pan_weights,
    step_direction_ramp,
    step_position_ramp,
    step_value_ramp,
)


def test_pan_weights_equal_power():
    for pan in (-1.0, -0.3, 0.0, 0.7, 1.0):
        left, right = compute_pan_weights(pan)
        assert left * left + right * right == pytest.approx(1.0)


def test_pan_weights_centre_and_clamp():
    left, right = compute_pan_weights(0.0)
    assert left == pytest.approx(right)
    assert compute_pan_weights(5.0) == compute_pan_weights(1.0)
    assert compute_pan_weights(-5.0) == compute_pan_weights(-1.0)
    hard_left = compute_pan_weights(-1.0)
    assert hard_left[0] == 1.0
    assert hard_left[1] == 0.0


def test_3d_pan_at_listener_position():
    left, right = compute_pan_from_listener_and_position([1, 2, 3], [1, 0, 0], [1, 2, 3], 10.0)
    assert left == right == math.sqrt(2.0)


def test_3d_pan_source_on_right_and_attenuation():
    left, right = compute_pan_from_listener_and_position([0, 0, 0], [1, 0, 0], [4, 0, 0], 4.0)
    assert right > left
    assert math.hypot(left, right) == pytest.approx(0.5)
    near = compute_pan_from_listener_and_position([0, 0, 0], [1, 0, 0], [0, 1, 0], math.inf)
    assert near[0] == pytest.approx(near[1])


def test_ramp_set_immediate_and_delayed():
    ramp = Ramp(1.0)
    ramp.set(0.5, 0.0)
    assert ramp.value == 0.5 and ramp.target == 0.5 and ramp.ramp == 0.0
    ramp.set(2.0, 1.0)
    assert ramp.value == 0.5 and ramp.target == 2.0 and ramp.ramp == 1.0


def test_step_value_ramp_moves_then_snaps():
    ramp = Ramp(0.0)
    ramp.set(1.0, 10 * RAMP_STEP)
    step_value_ramp(ramp)
    assert 0.0 < ramp.value < 1.0
    assert ramp.ramp == pytest.approx(9 * RAMP_STEP)
    for _ in range(20):
        step_value_ramp(ramp)
    assert ramp.value == 1.0
    assert ramp.ramp == 0.0


def test_step_position_ramp_reaches_target():
    ramp = Ramp(np.zeros(3))
    ramp.set(np.array([3.0, -3.0, 6.0]), 4 * RAMP_STEP)
    step_position_ramp(ramp)
    assert np.all(np.abs(ramp.value) < np.abs(ramp.target))
    for _ in range(10):
        step_position_ramp(ramp)
    assert np.array_equal(ramp.value, ramp.target)


@pytest.mark.parametrize("target", [[0.0, 1.0, 0.0], [-1.0, 0.0, 0.0]])
def test_step_direction_ramp_stays_unit(target):
    ramp = Ramp(np.array([1.0, 0.0, 0.0]))
    ramp.set(np.array(target), 8 * RAMP_STEP)
    previous = float(np.dot(ramp.value, ramp.target))
    for _ in range(7):
        step_direction_ramp(ramp)
        assert np.linalg.norm(ramp.value) == pytest.approx(1.0)
        current = float(np.dot(ramp.value, ramp.target))
        assert current >= previous - 1e-9
        previous = current
    for _ in range(3):
        step_direction_ramp(ramp)
    assert np.allclose(ramp.value, target)


def test_listener_normalises_right():
    listener = Listener()
    listener.set_position_right([1, 2, 3], [0, 5, 0], 0.0)
    assert np.allclose(listener.right.value, [0, 1, 0])
    assert np.allclose(listener.position.value, [1, 2, 3])
    listener.set_position_right([0, 0, 0], [0, 0, 0], 0.0)
    assert np.allclose(listener.right.value, [1, 0, 0])


def test_mix_centred_constant_sample():
    mixer = Mixer()
    mixer.loop(Sample(np.ones(100)))
    out = mixer.mix()
    assert out.shape == (MIX_SAMPLES, 2)
    expected = compute_pan_weights(0.0)[0]
    assert np.allclose(out[:, 0], expected)
    assert np.allclose(out[:, 0], out[:, 1])
    assert len(mixer.playing_samples) == 1


def test_short_sample_finishes_and_is_removed():
    mixer = Mixer()
    playing = mixer.play(Sample(np.ones(10)), 1.0, -1.0)
    out = mixer.mix()
    assert playing.stopped
    assert mixer.playing_samples == []
    assert np.count_nonzero(out[:, 0]) == 10
    assert np.allclose(out[:, 1], 0.0)


def test_stop_fades_out_and_removes():
    mixer = Mixer()
    playing = mixer.loop(Sample(np.ones(50)))
    playing.stop()
    playing.set_volume(2.0, 0.0)
    assert playing.volume.target == 0.0
    mixer.mix()
    assert playing.stopped
    assert mixer.playing_samples == []


def test_stop_all_samples_marks_stopping():
    mixer = Mixer()
    a = mixer.loop(Sample(np.ones(5)))
    b = mixer.loop_3d(Sample(np.ones(5)), 1.0, [1.0, 0.0, 0.0])
    mixer.stop_all_samples()
    assert a.stopping and b.stopping


def test_mode_specific_setters_are_ignored():
    sample = Sample(np.zeros(4))
    flat = PlayingSample(sample, 1.0, pan=0.25)
    flat.set_position([1, 1, 1], 0.0)
    assert np.all(np.isnan(flat.position.value))
    spatial = PlayingSample(sample, 1.0, position=[1, 2, 3])
    spatial.set_pan(0.5, 0.0)
    assert math.isnan(spatial.pan.value)
    spatial.set_position([4, 5, 6], 0.0)
    assert np.allclose(spatial.position.value, [4, 5, 6])


def test_global_volume_zero_silences():
    mixer = Mixer()
    mixer.set_volume(0.0, 0.0)
    mixer.loop(Sample(np.ones(10)))
    assert np.all(mixer.mix() == 0.0)


def test_sample_from_wav_file(tmp_path):
    samples = [0.25, -0.5]
    data = struct.pack("<2f", *samples)
    fmt = struct.pack("<HHIIHH", 3, 1, 48000, 48000 * 4, 4, 32)
    body = b"WAVEfmt " + struct.pack("<I", len(fmt)) + fmt + b"data" + struct.pack("<I", len(data)) + data
    path = tmp_path / "x.wav"
    path.write_bytes(b"RIFF" + struct.pack("<I", len(body)) + body)
    assert Sample.from_file(path).data.tolist() == samples


def test_sample_from_unknown_extension(tmp_path):
    with pytest.raises(ValueError, match="unsure how to load"):
        Sample.from_file(tmp_path / "x.mp3")