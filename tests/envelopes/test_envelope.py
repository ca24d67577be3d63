"""
Test suite per la classe Envelope (valutazione, mutazione, copia,
editing interattivo, caricamento).

Organizzazione:
1. Test costruzione e validazione
2. Test value_at / value_at_relative
3. Test values_at (valutazione bufferizzata)
4. Test query sui punti (number_of_points_after, next_point_after)
5. Test mutazione dei punti e clamp
6. Test range e modo (set_range, rescale_values, set_logarithmic)
7. Test copia (copy, from_envelope)
8. Test editing interattivo (drag)
9. Test primitivi di caricamento
10. Test introspezione
"""

import math

import pytest

from envelopes.control_point import ControlPoint
from envelopes.envelope import Envelope
from envelopes.envelope_config import LOG_VALUE_FLOOR, EnvelopeConfig


def assert_strictly_increasing(env):
    times = [p.t for p in env]
    assert all(a < b for a, b in zip(times, times[1:])), times


# =============================================================================
# 1. TEST COSTRUZIONE
# =============================================================================

class TestConstruction:

    def test_defaults(self):
        env = Envelope()

        assert env.logarithmic is False
        assert env.min_value == 0.0
        assert env.max_value == 1.0
        assert env.default_value == 1.0
        assert env.length == 0.0
        assert env.epsilon == pytest.approx(1.0 / 200000)
        assert len(env) == 0

    def test_min_greater_than_max_raises(self):
        with pytest.raises(ValueError, match="min_value"):
            Envelope(min_value=2.0, max_value=1.0)

    def test_log_with_non_positive_max_raises(self):
        with pytest.raises(ValueError, match="logaritmico"):
            Envelope(logarithmic=True, min_value=-1.0, max_value=0.0)

    def test_non_positive_epsilon_raises(self):
        with pytest.raises(ValueError):
            Envelope(epsilon=0.0)

    def test_default_clamped_into_range(self):
        env = Envelope(min_value=0.0, max_value=1.0, default_value=5.0)
        assert env.default_value == 1.0

    def test_negative_length_clamped(self):
        assert Envelope(length=-3.0).length == 0.0

    def test_from_config(self):
        config = EnvelopeConfig(
            name='speed', logarithmic=True, min_value=0.1, max_value=10.0,
            default_value=1.0, offset=2.0, length=8.0, sample_rate=48000
        )
        env = Envelope.from_config(config)

        assert env.name == 'speed'
        assert env.logarithmic is True
        assert env.offset == 2.0
        assert env.length == 8.0
        assert env.epsilon == pytest.approx(1.0 / 48000)


# =============================================================================
# 2. TEST VALUE_AT
# =============================================================================

class TestValueAt:

    def test_empty_returns_default(self, flat_env):
        assert flat_env.value_at(3.0) == 0.5

    def test_linear_interpolation(self, triangle):
        assert triangle.value_at(2.5) == pytest.approx(0.5)
        assert triangle.value_at(7.5) == pytest.approx(0.5)

    def test_on_point(self, triangle):
        assert triangle.value_at(5.0) == pytest.approx(1.0)

    def test_flat_extrapolation(self, triangle):
        assert triangle.value_at(-3.0) == 0.0
        assert triangle.value_at(20.0) == 0.0

    def test_single_point_is_constant(self, make_envelope):
        env = make_envelope([(4, 0.3)], length=10.0)

        assert env.value_at(0.0) == pytest.approx(0.3)
        assert env.value_at(9.0) == pytest.approx(0.3)

    def test_offset_shifts_curve(self, triangle):
        triangle.set_offset(2.0)

        assert triangle.value_at(4.5) == pytest.approx(0.5)
        assert triangle.value_at_relative(2.5) == pytest.approx(0.5)

    def test_log_interpolation_is_geometric(self, env_log):
        assert env_log.value_at(1.0) == pytest.approx(10.0)

    def test_nan_time_returns_first_value(self, ramp):
        assert ramp.value_at(math.nan) == 1.0
        assert list(ramp.values_at(math.nan, 3, 1.0)) == [1.0, 1.0, 1.0]

    def test_random_access_after_sequential(self, triangle):
        """La cache non altera i risultati per accessi non monotoni."""
        expected = [triangle.value_at(t) for t in (1.0, 9.0, 3.0, 6.0)]
        assert expected == pytest.approx([0.2, 0.2, 0.6, 0.8])


# =============================================================================
# 3. TEST VALUES_AT
# =============================================================================

class TestValuesAt:

    def test_matches_value_at_linear(self, triangle):
        buffer = triangle.values_at(-1.0, 25, 0.5)
        expected = [triangle.value_at(-1.0 + 0.5 * i) for i in range(25)]

        assert len(buffer) == 25
        assert list(buffer) == pytest.approx(expected, abs=1e-9)

    def test_matches_value_at_log(self, env_log):
        buffer = env_log.values_at(-0.25, 12, 0.25)
        expected = [env_log.value_at(-0.25 + 0.25 * i) for i in range(12)]

        assert list(buffer) == pytest.approx(expected, rel=1e-9)

    def test_empty_fills_default(self, flat_env):
        assert list(flat_env.values_at(0.0, 4, 1.0)) == [0.5] * 4

    def test_zero_count(self, triangle):
        assert len(triangle.values_at(0.0, 0, 1.0)) == 0

    def test_with_offset(self, triangle):
        triangle.set_offset(10.0)
        buffer = triangle.values_at(12.5, 2, 5.0)

        assert list(buffer) == pytest.approx([0.5, 0.5])


# =============================================================================
# 4. TEST QUERY SUI PUNTI
# =============================================================================

class TestPointQueries:

    @pytest.mark.parametrize("t,expected", [
        (-1.0, 3), (0.0, 2), (1.0, 2), (5.0, 1), (7.0, 1), (10.0, 0),
    ])
    def test_number_of_points_after(self, triangle, t, expected):
        assert triangle.number_of_points_after(t) == expected

    def test_next_point_after(self, triangle):
        assert triangle.next_point_after(0.0) == 5.0
        assert triangle.next_point_after(5.0) == 10.0

    def test_next_point_after_last_returns_t(self, triangle):
        assert triangle.next_point_after(12.0) == 12.0


# =============================================================================
# 5. TEST MUTAZIONE E CLAMP
# =============================================================================

class TestMutation:

    def test_insert_returns_index(self, triangle):
        assert triangle.insert_or_replace_relative(2.0, 0.3) == 1
        assert len(triangle) == 4

    def test_insert_same_time_replaces(self, triangle):
        triangle.insert_or_replace_relative(5.0, 0.2)

        assert len(triangle) == 3
        assert triangle.value_at(5.0) == pytest.approx(0.2)

    def test_value_clamped(self, triangle):
        triangle.insert_or_replace_relative(2.0, 5.0)
        assert triangle[1].value == 1.0

    def test_time_clamped_to_domain(self, triangle):
        triangle.insert_or_replace_relative(20.0, 0.5)

        assert len(triangle) == 3
        assert triangle[2].as_tuple() == (10.0, 0.5)

    def test_insert_absolute_time(self, triangle):
        triangle.set_offset(1.0)
        triangle.insert_or_replace(3.0, 0.7)

        assert triangle[1].as_tuple() == (2.0, 0.7)

    def test_log_value_floor(self):
        env = Envelope(logarithmic=True, min_value=0.0, max_value=1.0, length=1.0)
        env.insert_or_replace_relative(0.5, 0.0)

        assert env[0].value == LOG_VALUE_FLOOR

    def test_nan_never_stored(self, triangle):
        triangle.insert_or_replace_relative(2.0, float('nan'))
        assert not math.isnan(triangle[1].value)

    def test_insert_at_and_delete_at(self, triangle):
        triangle.insert_at(1, ControlPoint(2.0, 3.0))
        assert triangle[1].as_tuple() == (2.0, 1.0)

        point = triangle.delete_at(1)
        assert point.t == 2.0
        assert len(triangle) == 3

    def test_reassign_existing(self, triangle):
        assert triangle.reassign(5.0, 0.3) == 0
        assert triangle.value_at(5.0) == pytest.approx(0.3)

    def test_reassign_missing(self, triangle):
        assert triangle.reassign(4.0, 0.3) == -1
        assert len(triangle) == 3

    def test_flatten(self, triangle):
        triangle.flatten(0.5)

        assert len(triangle) == 0
        assert triangle.value_at(3.0) == 0.5


# =============================================================================
# 6. TEST RANGE E MODO
# =============================================================================

class TestRangeAndMode:

    def test_set_range_clamps(self, triangle):
        triangle.set_range(0.0, 0.5)

        assert triangle.max_value == 0.5
        assert triangle.value_at(5.0) == 0.5
        assert triangle.default_value == 0.5

    def test_set_range_invalid_raises(self, triangle):
        with pytest.raises(ValueError):
            triangle.set_range(1.0, 0.0)

    def test_rescale_values_remaps(self, triangle):
        triangle.rescale_values(0.0, 2.0)

        assert triangle.value_at(5.0) == pytest.approx(2.0)
        assert triangle.value_at(2.5) == pytest.approx(1.0)
        assert triangle.default_value == pytest.approx(2.0)

    def test_rescale_values_degenerate_range(self, make_envelope):
        env = make_envelope([(0, 1.0)], length=1.0, min_value=1.0, max_value=1.0)
        env.rescale_values(0.0, 4.0)

        assert env[0].value == 0.0

    def test_set_logarithmic_lifts_zero_values(self, triangle):
        triangle.set_logarithmic(True)

        assert triangle.logarithmic is True
        assert all(p.value > 0 for p in triangle)


# =============================================================================
# 7. TEST COPIA
# =============================================================================

class TestCopy:

    def test_copy_is_independent(self, triangle):
        clone = triangle.copy()
        clone.insert_or_replace_relative(2.0, 1.0)

        assert len(triangle) == 3
        assert len(clone) == 4
        assert clone.length == triangle.length

    def test_window_synthesises_boundaries(self, triangle):
        window = Envelope.from_envelope(triangle, 2.5, 7.5)

        assert window.offset == 2.5
        assert window.length == 5.0
        assert [p.t for p in window] == pytest.approx([0.0, 2.5, 5.0])
        assert [p.value for p in window] == pytest.approx([0.5, 1.0, 0.5])
        assert window.value_at(5.0) == pytest.approx(1.0)

    def test_window_starting_on_point(self, triangle):
        window = Envelope.from_envelope(triangle, 5.0, 10.0)

        assert window.offset == 5.0
        assert [p.as_tuple() for p in window] == [(0.0, 1.0), (5.0, 0.0)]
        assert_strictly_increasing(window)

    def test_full_window(self, triangle):
        window = Envelope.from_envelope(triangle, 0.0, 10.0)
        assert [p.as_tuple() for p in window] == [p.as_tuple() for p in triangle]

    def test_window_clipped_to_source(self, triangle):
        window = Envelope.from_envelope(triangle, -5.0, 30.0)

        assert window.offset == 0.0
        assert window.length == 10.0


# =============================================================================
# 8. TEST EDITING INTERATTIVO
# =============================================================================

class TestDrag:

    def test_find_existing_point(self, triangle):
        index = triangle.find_or_create_nearest(5.000001, 0.9)

        assert index == 1
        assert triangle.highlighted_index == 1
        assert len(triangle) == 3

    def test_create_new_point(self, triangle):
        index = triangle.find_or_create_nearest(2.0, 0.4)

        assert index == 1
        assert len(triangle) == 4
        assert triangle[1].as_tuple() == (2.0, 0.4)

    def test_move_within_neighbours(self, triangle):
        triangle.set_drag_target(1)
        triangle.move_drag_target(7.0, 0.3)

        assert triangle[1].as_tuple() == (7.0, 0.3)
        assert triangle.drag_target_valid is True

    def test_move_past_next_neighbour_clamped(self, triangle):
        triangle.set_drag_target(1)
        triangle.move_drag_target(20.0, 0.5)

        assert triangle[1].t == pytest.approx(10.0 - triangle.epsilon)
        assert_strictly_increasing(triangle)

    def test_move_before_previous_neighbour_clamped(self, triangle):
        triangle.set_drag_target(1)
        triangle.move_drag_target(-5.0, 0.5)

        assert triangle[1].t == pytest.approx(triangle.epsilon)
        assert_strictly_increasing(triangle)

    def test_move_value_clamped(self, triangle):
        triangle.set_drag_target(1)
        triangle.move_drag_target(5.0, 3.0)

        assert triangle[1].value == 1.0

    def test_move_without_target_is_noop(self, triangle):
        triangle.move_drag_target(3.0, 0.2)
        assert [p.t for p in triangle] == [0.0, 5.0, 10.0]

    def test_invalidated_target_deleted_on_commit(self, triangle):
        triangle.set_drag_target(1)
        triangle.invalidate_drag_target()

        # Il punto esiste ancora fino al commit
        assert len(triangle) == 3

        triangle.commit_or_delete_drag_target()

        assert len(triangle) == 2
        assert triangle.highlighted_index == -1

    def test_invalidated_target_snaps_to_next_neighbour(self, triangle):
        """La curva mostra già la cancellazione prima del commit."""
        triangle.set_drag_target(1)
        triangle.invalidate_drag_target()

        assert triangle[1].as_tuple() == (10.0, 0.0)
        assert triangle.value_at(5.0) == 0.0
        assert triangle.drag_target_valid is False

    def test_invalidated_last_point_parked_with_previous_value(self, triangle):
        triangle.set_drag_target(2)
        triangle.invalidate_drag_target()

        assert triangle[2].t > triangle.length
        assert triangle.value_at(10.0) == pytest.approx(1.0)

        triangle.commit_or_delete_drag_target()
        assert [p.as_tuple() for p in triangle] == [(0.0, 0.0), (5.0, 1.0)]

    def test_invalidated_only_point_takes_default(self, make_envelope):
        env = make_envelope([(3.0, 0.7)], length=10.0, default_value=0.2)
        env.set_drag_target(0)
        env.invalidate_drag_target()

        assert env.value_at(3.0) == 0.2

    def test_move_restores_invalidated_target(self, triangle):
        triangle.set_drag_target(1)
        triangle.invalidate_drag_target()
        triangle.move_drag_target(5.0, 1.0)

        assert triangle.drag_target_valid is True
        assert triangle.value_at(5.0) == 1.0

        triangle.commit_or_delete_drag_target()
        assert [p.as_tuple() for p in triangle] == [(0.0, 0.0), (5.0, 1.0), (10.0, 0.0)]

    def test_region_edit_applies_pending_deletion(self, triangle):
        triangle.set_drag_target(2)
        triangle.invalidate_drag_target()
        triangle.set_length(8.0)

        assert_strictly_increasing(triangle)
        assert all(p.t <= 8.0 for p in triangle)
        assert triangle.highlighted_index == -1

    def test_valid_target_kept_on_commit(self, triangle):
        triangle.set_drag_target(1)
        triangle.move_drag_target(6.0, 0.8)
        triangle.commit_or_delete_drag_target()

        assert len(triangle) == 3
        assert triangle.highlighted_index == -1

    def test_set_drag_target_clamped(self, triangle):
        triangle.set_drag_target(99)
        assert triangle.highlighted_index == 2

        triangle.set_drag_target(-7)
        assert triangle.highlighted_index == -1


# =============================================================================
# 9. TEST CARICAMENTO
# =============================================================================

class TestLoad:

    def test_load_sorts_and_collapses(self):
        env = Envelope(length=0.0)
        env.begin_load(3)
        env.append_loaded_point(5.0, 1.0)
        env.append_loaded_point(0.0, 0.0)
        env.append_loaded_point(5.0, 0.5)
        env.end_load()

        assert [p.as_tuple() for p in env] == [(0.0, 0.0), (5.0, 0.5)]
        assert env.length == 5.0

    def test_load_negative_time_clamped(self):
        env = Envelope(length=2.0)
        env.begin_load(1)
        env.append_loaded_point(-1.0, 0.5)
        env.end_load()

        assert env[0].as_tuple() == (0.0, 0.5)

    def test_load_clamps_values(self):
        env = Envelope(length=2.0)
        env.begin_load(1)
        env.append_loaded_point(1.0, 7.0)
        env.end_load()

        assert env[0].value == 1.0

    def test_begin_load_clears(self, triangle):
        triangle.begin_load(0)
        triangle.end_load()

        assert len(triangle) == 0

    def test_point_at_is_relative(self, triangle):
        triangle.set_offset(3.0)

        assert triangle.point_count() == 3
        assert triangle.point_at(1) == (5.0, 1.0)

    def test_get_points_is_absolute(self, triangle):
        triangle.set_offset(3.0)
        assert triangle.get_points() == [(3.0, 0.0), (8.0, 1.0), (13.0, 0.0)]


# =============================================================================
# 10. TEST INTROSPEZIONE
# =============================================================================

class TestIntrospection:

    def test_iter_and_getitem(self, triangle):
        assert [p.t for p in triangle] == [0.0, 5.0, 10.0]
        assert triangle[-1].t == 10.0

    def test_repr(self, triangle):
        text = repr(triangle)

        assert 'linear' in text
        assert 'points=3' in text

    def test_is_envelope_like(self, triangle):
        assert Envelope.is_envelope_like(triangle)
        assert Envelope.is_envelope_like([[0, 1], [1, 2]])
        assert not Envelope.is_envelope_like(5.0)
