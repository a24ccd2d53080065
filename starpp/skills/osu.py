"""Strain skills for osu!standard.
"""
import math

from ..position import Position
from ..utils import clamp
from .strain import strain_decay


class OsuDifficultyObject:
    """A normalized hit object paired with the objects before it.

    Parameters
    ----------
    base : NormalizedObject
        The object being hit.
    last : NormalizedObject
        The object before ``base``.
    last_last : NormalizedObject or None
        The object before ``last``.
    index : int
        The index of this object in ``objects``.
    objects : list[OsuDifficultyObject]
        All of the difficulty objects of the map.
    radius : float
        The circle radius in osu! pixels.
    travel : callable[NormalizedObject, SliderTravel]
        Lookup the cursor movement for a slider.
    """
    normalized_radius = 50
    min_delta_time = 25
    maximum_slider_radius = normalized_radius * 2.4
    assumed_slider_radius = normalized_radius * 1.8

    def __init__(self,
                 base,
                 last,
                 last_last,
                 index,
                 objects,
                 radius,
                 travel):
        self.base = base
        self.last = last
        self.index = index
        self._objects = objects

        self.start_time = base.start_time
        self.delta_time = base.start_time - last.start_time
        self.strain_time = max(self.delta_time, self.min_delta_time)

        scaling_factor = self.normalized_radius / radius
        if radius < 30:
            scaling_factor *= 1 + min(30 - radius, 5) / 50

        self.travel_distance = 0.0
        self.travel_time = float(self.min_delta_time)
        if base.is_slider:
            slider_travel = travel(base)
            self.travel_distance = slider_travel.distance * scaling_factor
            self.travel_time = max(slider_travel.time, self.min_delta_time)

        self.lazy_jump_distance = 0.0
        self.minimum_jump_distance = 0.0
        self.minimum_jump_time = self.strain_time
        self.angle = None

        # spinners don't move the cursor
        if base.is_spinner or last.is_spinner:
            return

        last_cursor = _end_cursor_position(last, travel)
        self.lazy_jump_distance = (
            base.position * scaling_factor - last_cursor * scaling_factor
        ).length()
        self.minimum_jump_distance = self.lazy_jump_distance

        if last.is_slider:
            last_travel_time = max(travel(last).time, self.min_delta_time)
            self.minimum_jump_time = max(
                self.strain_time - last_travel_time,
                self.min_delta_time,
            )
            tail_jump_distance = (
                (last.end_position - base.position).length() * scaling_factor
            )
            self.minimum_jump_distance = max(
                0.0,
                min(
                    self.lazy_jump_distance - (
                        self.maximum_slider_radius -
                        self.assumed_slider_radius
                    ),
                    tail_jump_distance - self.maximum_slider_radius,
                ),
            )

        if last_last is not None and not last_last.is_spinner:
            last_last_cursor = _end_cursor_position(last_last, travel)
            v1 = last_last_cursor - last.position
            v2 = base.position - last_cursor
            dot = v1.dot(v2)
            det = v1.x * v2.y - v1.y * v2.x
            self.angle = abs(math.atan2(det, dot))

    def previous(self, n):
        ix = self.index - (n + 1)
        if ix < 0:
            return None
        return self._objects[ix]

    def next(self, n):
        ix = self.index + n + 1
        if ix >= len(self._objects):
            return None
        return self._objects[ix]

    def opacity_at(self, time, preempt):
        """The opacity of this object at ``time`` without hidden.
        """
        fade_in = 400 * min(1, preempt / 450)
        fade_in_start = self.start_time - preempt
        return clamp((time - fade_in_start) / fade_in, 0.0, 1.0)


class SliderTravel:
    """How far the cursor has to move to follow a slider.

    Parameters
    ----------
    end_position : Position
        Where the cursor is when the slider ends.
    distance : float
        The distance the cursor travels in osu! pixels.
    time : float
        The time spent following the slider in milliseconds.
    """
    legacy_last_tick_offset = 36

    def __init__(self, end_position, distance, time):
        self.end_position = end_position
        self.distance = distance
        self.time = time

    @classmethod
    def follow(cls, slider, radius):
        """Move the cursor along the nested objects of a slider as lazily as
        possible.

        Parameters
        ----------
        slider : NormalizedObject
            The slider to follow.
        radius : float
            The circle radius in osu! pixels.

        Returns
        -------
        travel : SliderTravel
            The cursor movement.
        """
        duration = slider.duration
        tracking_time = max(
            duration - cls.legacy_last_tick_offset,
            duration / 2,
        )

        # distances below are measured in osu! pixels, the difficulty object
        # scales them into normalized space
        required = OsuDifficultyObject.assumed_slider_radius * (
            radius / OsuDifficultyObject.normalized_radius
        )

        cursor = slider.position
        distance = 0.0
        for _, point in slider.path:
            movement = point - cursor
            length = movement.length()
            if length > required:
                ratio = (length - required) / length
                cursor = cursor + movement * ratio
                distance += length * ratio

        return cls(cursor, distance, tracking_time)


def _end_cursor_position(ob, travel):
    if ob.is_slider:
        return travel(ob).end_position
    return Position(*ob.position)


def difficulty_objects(hit_objects, radius):
    """Pair each normalized object with the objects before it.

    Parameters
    ----------
    hit_objects : sequence[NormalizedObject]
        The normalized objects ordered by time.
    radius : float
        The circle radius in osu! pixels.

    Returns
    -------
    difficulty_objects : list[OsuDifficultyObject]
        One difficulty object for every hit object after the first.
    """
    travels = {}

    def travel(ob):
        try:
            return travels[ob.index]
        except KeyError:
            travels[ob.index] = out = SliderTravel.follow(ob, radius)
            return out

    objects = []
    for n in range(1, len(hit_objects)):
        objects.append(OsuDifficultyObject(
            hit_objects[n],
            hit_objects[n - 1],
            hit_objects[n - 2] if n > 1 else None,
            len(objects),
            objects,
            radius,
            travel,
        ))
    return objects


def _wide_angle_bonus(angle):
    return math.sin(
        3 / 4 * (min(5 / 6 * math.pi, max(math.pi / 6, angle)) - math.pi / 6),
    ) ** 2


def _acute_angle_bonus(angle):
    return 1 - _wide_angle_bonus(angle)


def evaluate_aim(current, with_sliders):
    """The aim difficulty of moving to ``current``.

    Parameters
    ----------
    current : OsuDifficultyObject
        The object being hit.
    with_sliders : bool
        Whether to reward following sliders.

    Returns
    -------
    difficulty : float
        The aim difficulty.
    """
    wide_angle_multiplier = 1.5
    acute_angle_multiplier = 1.95
    slider_multiplier = 1.35
    velocity_change_multiplier = 0.75

    if current.base.is_spinner or current.index <= 1 or (
            current.last.is_spinner):
        return 0.0

    last = current.previous(0)
    last_last = current.previous(1)

    curr_velocity = current.lazy_jump_distance / current.strain_time
    if last.base.is_slider and with_sliders:
        travel_velocity = last.travel_distance / last.travel_time
        movement_velocity = (
            current.minimum_jump_distance / current.minimum_jump_time
        )
        curr_velocity = max(curr_velocity, movement_velocity + travel_velocity)

    prev_velocity = last.lazy_jump_distance / last.strain_time
    if last_last.base.is_slider and with_sliders:
        travel_velocity = last_last.travel_distance / last_last.travel_time
        movement_velocity = last.minimum_jump_distance / last.minimum_jump_time
        prev_velocity = max(prev_velocity, movement_velocity + travel_velocity)

    wide_angle_bonus = 0.0
    acute_angle_bonus = 0.0
    slider_bonus = 0.0
    velocity_change_bonus = 0.0

    aim_strain = curr_velocity

    short_time = min(current.strain_time, last.strain_time)
    long_time = max(current.strain_time, last.strain_time)

    # only rhythmically similar patterns get angle bonuses
    if long_time < 1.25 * short_time and (
            current.angle is not None and
            last.angle is not None and
            last_last.angle is not None):
        angle_bonus = min(curr_velocity, prev_velocity)

        wide_angle_bonus = _wide_angle_bonus(current.angle)
        acute_angle_bonus = _acute_angle_bonus(current.angle)

        if current.strain_time > 100:
            acute_angle_bonus = 0.0
        else:
            acute_angle_bonus *= (
                _acute_angle_bonus(last.angle) *
                min(angle_bonus, 125 / current.strain_time) *
                math.sin(
                    math.pi / 2 * min(1, (100 - current.strain_time) / 25),
                ) ** 2 *
                math.sin(
                    math.pi / 2 *
                    (clamp(current.lazy_jump_distance, 50, 100) - 50) / 50,
                ) ** 2
            )

        # penalize repeated wide or acute angles
        wide_angle_bonus *= angle_bonus * (
            1 - min(wide_angle_bonus, _wide_angle_bonus(last.angle) ** 3)
        )
        acute_angle_bonus *= 0.5 + 0.5 * (
            1 - min(
                acute_angle_bonus,
                _acute_angle_bonus(last_last.angle) ** 3,
            )
        )

    if max(prev_velocity, curr_velocity):
        prev_velocity = (
            (last.lazy_jump_distance + last_last.travel_distance) /
            last.strain_time
        )
        curr_velocity = (
            (current.lazy_jump_distance + last.travel_distance) /
            current.strain_time
        )
        fastest = max(prev_velocity, curr_velocity)
        if fastest:
            change = abs(prev_velocity - curr_velocity)
            dist_ratio = math.sin(math.pi / 2 * change / fastest) ** 2
            overlap_velocity_buff = min(125 / short_time, change)
            velocity_change_bonus = (
                overlap_velocity_buff *
                dist_ratio *
                (short_time / long_time) ** 2
            )

    if last.base.is_slider:
        slider_bonus = last.travel_distance / last.travel_time

    aim_strain += max(
        acute_angle_bonus * acute_angle_multiplier,
        (
            wide_angle_bonus * wide_angle_multiplier +
            velocity_change_bonus * velocity_change_multiplier
        ),
    )

    if with_sliders:
        aim_strain += slider_bonus * slider_multiplier

    return aim_strain


def evaluate_speed(current, great_window):
    """The tapping difficulty of ``current``.

    Parameters
    ----------
    current : OsuDifficultyObject
        The object being hit.
    great_window : float
        The 300 hit window in milliseconds after the clock rate.

    Returns
    -------
    difficulty : float
        The speed difficulty.
    """
    single_spacing_threshold = 125
    min_speed_bonus = 75
    speed_balancing_factor = 40

    if current.base.is_spinner:
        return 0.0

    previous = current.previous(0)
    following = current.next(0)

    strain_time = current.strain_time
    great_window_full = great_window * 2

    # nerf doubletappable doubles
    doubletapness = 1.0
    if following is not None:
        current_delta = max(1, current.delta_time)
        next_delta = max(1, following.delta_time)
        delta_difference = abs(next_delta - current_delta)
        speed_ratio = current_delta / max(current_delta, delta_difference)
        window_ratio = min(1, current_delta / great_window_full) ** 2
        doubletapness = speed_ratio ** (1 - window_ratio)

    strain_time /= clamp((strain_time / great_window_full) / 0.93, 0.92, 1)

    speed_bonus = 1.0
    if strain_time < min_speed_bonus:
        speed_bonus = 1 + 0.75 * (
            (min_speed_bonus - strain_time) / speed_balancing_factor
        ) ** 2

    travel_distance = previous.travel_distance if previous is not None else 0
    distance = min(
        single_spacing_threshold,
        travel_distance + current.minimum_jump_distance,
    )

    return (
        (speed_bonus + speed_bonus *
         (distance / single_spacing_threshold) ** 3.5) *
        doubletapness /
        strain_time
    )


def evaluate_rhythm(current, great_window):
    """The rhythm complexity multiplier of ``current``.

    Parameters
    ----------
    current : OsuDifficultyObject
        The object being hit.
    great_window : float
        The 300 hit window in milliseconds after the clock rate.

    Returns
    -------
    multiplier : float
        The rhythm multiplier, at least 1.
    """
    history_time_max = 5000
    history_objects_max = 32
    rhythm_multiplier = 0.75

    if current.base.is_spinner:
        return 0.0

    previous_island_size = 0
    rhythm_complexity_sum = 0.0
    island_size = 1
    start_ratio = 0.0
    first_delta_switch = False

    historical_note_count = min(current.index, history_objects_max)

    rhythm_start = 0
    while (rhythm_start < historical_note_count - 2 and
           current.start_time -
           current.previous(rhythm_start).start_time < history_time_max):
        rhythm_start += 1

    for i in range(rhythm_start, 0, -1):
        curr = current.previous(i - 1)
        prev = current.previous(i)
        last = current.previous(i + 1)

        # older objects matter less
        historical_decay = min(
            (history_time_max - (current.start_time - curr.start_time)) /
            history_time_max,
            (historical_note_count - i) / historical_note_count,
        )

        curr_delta = curr.strain_time
        prev_delta = prev.strain_time
        last_delta = last.strain_time

        current_ratio = 1.0 + 6.0 * min(
            0.5,
            math.sin(
                math.pi /
                (min(prev_delta, curr_delta) / max(prev_delta, curr_delta)),
            ) ** 2,
        )

        window_penalty = min(
            1,
            max(0, abs(prev_delta - curr_delta) - great_window * 0.6) /
            (great_window * 0.6),
        )

        effective_ratio = window_penalty * current_ratio

        if first_delta_switch:
            if not (prev_delta > 1.25 * curr_delta or
                    prev_delta * 1.25 < curr_delta):
                # island is still progressing
                if island_size < 7:
                    island_size += 1
            else:
                if curr.base.is_slider:
                    effective_ratio *= 0.125
                if prev.base.is_slider:
                    effective_ratio *= 0.25
                if previous_island_size == island_size:
                    effective_ratio *= 0.25
                if previous_island_size % 2 == island_size % 2:
                    effective_ratio *= 0.50
                if (last_delta > prev_delta + 10 and
                        prev_delta > curr_delta + 10):
                    effective_ratio *= 0.125

                rhythm_complexity_sum += (
                    math.sqrt(effective_ratio * start_ratio) *
                    historical_decay *
                    math.sqrt(4 + island_size) / 2 *
                    math.sqrt(4 + previous_island_size) / 2
                )

                start_ratio = effective_ratio
                previous_island_size = island_size

                # we're slowing down, stop counting
                if prev_delta * 1.25 < curr_delta:
                    first_delta_switch = False

                island_size = 1

        elif prev_delta > 1.25 * curr_delta:
            # we want to be speeding up
            first_delta_switch = True
            start_ratio = effective_ratio
            island_size = 1

    return math.sqrt(4 + rhythm_complexity_sum * rhythm_multiplier) / 2


def evaluate_flashlight(current, radius, preempt):
    """The memorization difficulty of ``current`` under flashlight.

    Parameters
    ----------
    current : OsuDifficultyObject
        The object being hit.
    radius : float
        The circle radius in osu! pixels.
    preempt : float
        The milliseconds an object is visible before it is hit.

    Returns
    -------
    difficulty : float
        The flashlight difficulty.
    """
    max_opacity_bonus = 0.4
    min_velocity = 0.5
    slider_multiplier = 1.3
    min_angle_multiplier = 0.2

    if current.base.is_spinner:
        return 0.0

    scaling_factor = 52 / radius

    small_dist_nerf = 1.0
    cumulative_strain_time = 0.0
    result = 0.0
    last = current
    angle_repeat_count = 0.0

    for i in range(min(current.index, 10)):
        previous = current.previous(i)

        if not previous.base.is_spinner:
            jump_distance = (
                current.base.position - previous.base.end_position
            ).length()
            cumulative_strain_time += last.strain_time

            # nerf stacked objects
            if i == 0:
                small_dist_nerf = min(1, jump_distance / 75)

            stack_nerf = min(
                1,
                (previous.lazy_jump_distance / scaling_factor) / 25,
            )

            opacity_bonus = 1 + max_opacity_bonus * (
                1 - current.opacity_at(previous.start_time, preempt)
            )

            result += (
                stack_nerf *
                opacity_bonus *
                scaling_factor *
                jump_distance /
                cumulative_strain_time
            )

            if previous.angle is not None and current.angle is not None:
                # objects repeating the same angle are easier to read
                if abs(previous.angle - current.angle) < 0.02:
                    angle_repeat_count += max(1 - 0.1 * i, 0)

        last = previous

    result = (small_dist_nerf * result) ** 2
    result *= (
        min_angle_multiplier +
        (1 - min_angle_multiplier) / (angle_repeat_count + 1)
    )

    if current.base.is_slider:
        pixel_travel_distance = current.travel_distance / scaling_factor
        slider_bonus = max(
            0,
            pixel_travel_distance / current.travel_time - min_velocity,
        ) ** 0.5
        result += slider_bonus * pixel_travel_distance * slider_multiplier

    return result


class Aim:
    """Aim, the difficulty of moving the cursor between objects.

    Parameters
    ----------
    with_sliders : bool, optional
        Whether following sliders counts as aim.
    """
    section_length = 400
    skill_multiplier = 23.55
    decay_base = 0.15
    decay_weight = 0.9
    reduced_section_count = 10
    reduced_strain_baseline = 0.75
    difficulty_multiplier = 1.06

    def __init__(self, with_sliders=True):
        self.with_sliders = with_sliders
        self.name = 'aim' if with_sliders else 'aim_no_sliders'
        self._current_strain = 0.0

    def strain_value_at(self, current):
        self._current_strain *= strain_decay(
            self.decay_base,
            current.delta_time,
        )
        self._current_strain += (
            evaluate_aim(current, self.with_sliders) * self.skill_multiplier
        )
        return self._current_strain

    def initial_strain(self, time, current):
        return self._current_strain * strain_decay(
            self.decay_base,
            time - current.previous(0).start_time,
        )


class Speed:
    """Speed, the difficulty of tapping quickly and with complex rhythms.

    Parameters
    ----------
    great_window : float
        The 300 hit window in milliseconds after the clock rate.
    """
    name = 'speed'
    section_length = 400
    skill_multiplier = 1375
    decay_base = 0.3
    decay_weight = 0.9
    reduced_section_count = 5
    reduced_strain_baseline = 0.75
    difficulty_multiplier = 1.04

    def __init__(self, great_window):
        self.great_window = great_window
        self._current_strain = 0.0
        self._current_rhythm = 0.0
        self.object_strains = []

    def strain_value_at(self, current):
        self._current_strain *= strain_decay(
            self.decay_base,
            current.strain_time,
        )
        self._current_strain += (
            evaluate_speed(current, self.great_window) *
            self.skill_multiplier
        )
        self._current_rhythm = evaluate_rhythm(current, self.great_window)

        total = self._current_strain * self._current_rhythm
        self.object_strains.append(total)
        return total

    def initial_strain(self, time, current):
        return (
            self._current_strain *
            self._current_rhythm *
            strain_decay(
                self.decay_base,
                time - current.previous(0).start_time,
            )
        )

    def relevant_note_count(self):
        """The number of notes which are relevant to the speed difficulty,
        weighted by how close their strain is to the hardest note.
        """
        if not self.object_strains:
            return 0.0

        max_strain = max(self.object_strains)
        if max_strain == 0:
            return 0.0

        return math.fsum(
            1.0 / (1.0 + math.exp(-(strain / max_strain * 12.0 - 6.0)))
            for strain in self.object_strains
        )


class Flashlight:
    """Flashlight, the difficulty of memorizing a map.

    Parameters
    ----------
    radius : float
        The circle radius in osu! pixels.
    preempt : float
        The milliseconds an object is visible before it is hit.
    """
    name = 'flashlight'
    section_length = 400
    skill_multiplier = 0.05
    decay_base = 0.15
    difficulty_multiplier = 1.06

    def __init__(self, radius, preempt):
        self.radius = radius
        self.preempt = preempt
        self._current_strain = 0.0

    def strain_value_at(self, current):
        self._current_strain *= strain_decay(
            self.decay_base,
            current.delta_time,
        )
        self._current_strain += (
            evaluate_flashlight(current, self.radius, self.preempt) *
            self.skill_multiplier
        )
        return self._current_strain

    def initial_strain(self, time, current):
        return self._current_strain * strain_decay(
            self.decay_base,
            time - current.previous(0).start_time,
        )


def slider_factor(aim, aim_no_sliders):
    """The share of the aim difficulty which does not come from sliders.
    """
    if aim <= 0:
        return 1.0
    return aim_no_sliders / aim

