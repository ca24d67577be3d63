# envelope_interpolation.py
"""
Segment math for the piecewise envelope curve.

Stateless, pure functions operating on one segment at a time, i.e. on two
(time, value) endpoints. A single `logarithmic` flag selects between the
linear and the log-linear (geometric) closed form of every operation:

- interpolate:               value at a time inside the segment
- integrate_interpolated:    integral of the segment
- integrate_inverse_interpolated:  integral of 1 / segment
- solve_integrate_inverse_interpolated:  inverse of the previous one

Near-equal endpoints make the log/ratio closed forms lose precision; below
LOG_RATIO_THRESHOLD the functions fall back to the linear/average formula.
"""

import math

# Below this |ln(y1 / y2)| the rounding error of the closed forms exceeds
# the difference between linear and logarithmic interpolation.
LOG_RATIO_THRESHOLD = 1.0e-5


def interpolate_points(y1: float, y2: float, factor: float, logarithmic: bool) -> float:
    """
    Interpolate between y1 (factor=0) and y2 (factor=1).

    In logarithmic mode the interpolation is linear in log10 space, which
    is the same as geometric interpolation (the base is irrelevant).
    """
    if logarithmic:
        return 10.0 ** (math.log10(y1) * (1.0 - factor) + math.log10(y2) * factor)
    return y1 * (1.0 - factor) + y2 * factor


def interpolate(t1: float, v1: float, t2: float, v2: float, t: float,
                logarithmic: bool) -> float:
    """
    Value at time t of the segment (t1, v1) - (t2, v2).

    A zero-length segment returns v2: the later point wins.
    """
    dt = t2 - t1
    if dt <= 0.0:
        return v2
    return interpolate_points(v1, v2, (t - t1) / dt, logarithmic)


def interpolation_step(v1: float, v2: float, dt: float, tstep: float,
                       logarithmic: bool) -> float:
    """
    Per-sample increment for buffered evaluation over a segment of length dt.

    Linear: additive step. Logarithmic: multiplicative ratio.
    Zero-length segment: no change (0 or ratio 1).
    """
    if logarithmic:
        if dt <= 0.0:
            return 1.0
        return 10.0 ** ((math.log10(v2) - math.log10(v1)) * tstep / dt)
    if dt <= 0.0:
        return 0.0
    return (v2 - v1) * tstep / dt


def integrate_interpolated(y1: float, y2: float, time: float, logarithmic: bool) -> float:
    """
    integral(interpolate(y1, y2, x), x = 0 .. time)

    Linear: trapezoid rule.
    Logarithmic: (y1 - y2) / ln(y1 / y2) * time, with the natural log
    whatever base is used for interpolation.
    """
    if logarithmic:
        l = math.log(y1 / y2)
        if abs(l) < LOG_RATIO_THRESHOLD:
            return (y1 + y2) * 0.5 * time
        return (y1 - y2) / l * time
    return (y1 + y2) * 0.5 * time


def integrate_inverse_interpolated(y1: float, y2: float, time: float,
                                   logarithmic: bool) -> float:
    """
    integral(1 / interpolate(y1, y2, x), x = 0 .. time)

    Linear:      ln(y1 / y2) / (y1 - y2) * time
    Logarithmic: (y1 - y2) / (ln(y1 / y2) * y1 * y2) * time
    Both fall back to the average 2 / (y1 + y2) * time when y1 ~ y2.

    A linear segment that touches zero diverges: the result is an infinity
    signed like the segment's values. One that crosses zero has no value
    and gives nan.
    """
    if time == 0.0:
        return 0.0
    if y1 * y2 < 0.0:
        return math.nan
    if y1 == 0.0 or y2 == 0.0:
        return math.copysign(math.inf, (y1 + y2) or 1.0) * time
    l = math.log(y1 / y2)
    if abs(l) < LOG_RATIO_THRESHOLD:
        return 2.0 / (y1 + y2) * time
    if logarithmic:
        return (y1 - y2) / (l * y1 * y2) * time
    return l / (y1 - y2) * time


def solve_integrate_inverse_interpolated(y1: float, y2: float, time: float,
                                         area: float, logarithmic: bool) -> float:
    """
    Solve integral(1 / interpolate(y1, y2, x), x = 0 .. res) = area for res.

    The result is clamped into [0, time]. A linear segment starting at zero
    gives 0: the reciprocal diverges there, so any area is reached at once.
    A segment heading to zero stops short of the zero crossing.
    """
    if time <= 0.0:
        return 0.0
    if not logarithmic and y1 == 0.0:
        return 0.0

    a = area / time
    if logarithmic:
        l = math.log(y1 / y2)
        if abs(l) < LOG_RATIO_THRESHOLD:
            res = a * (y1 + y2) * 0.5
        elif 1.0 + a * y1 * l <= 0.0:
            res = 1.0
        else:
            res = math.log1p(a * y1 * l) / l
    else:
        if abs(y2 - y1) < LOG_RATIO_THRESHOLD:
            res = a * (y1 + y2) * 0.5
        else:
            try:
                res = y1 * math.expm1(a * (y2 - y1)) / (y2 - y1)
            except OverflowError:
                res = math.copysign(math.inf, y1 * (y2 - y1))

    return max(0.0, min(1.0, res)) * time
