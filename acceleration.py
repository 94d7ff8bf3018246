"""Hold-duration based cursor acceleration."""

from settings import NavigationConfig


def speed(hold_duration: float, config: NavigationConfig, precision_active: bool) -> float:
    """Pixels per tick for a key held ``hold_duration`` seconds.

    speed = initial_move_step + acceleration_multiplier * acceleration_base ** hold_duration

    At zero hold time the exponential term is already 1, so the first tick
    jumps by the full multiplier. Precision mode divides by
    ``precision_divisor`` before ``max_move_step`` (if any) is applied.
    """
    hold_duration = max(0.0, hold_duration)
    value = config.initial_move_step
    if config.acceleration_multiplier:
        try:
            factor = config.acceleration_base ** hold_duration
        except OverflowError:
            factor = float("inf")
        value += config.acceleration_multiplier * factor
    if precision_active:
        value /= config.precision_divisor
    if config.max_move_step is not None:
        value = min(value, config.max_move_step)
    return value
