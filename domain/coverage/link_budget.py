"""Free-space link budget.

Constants fold the speed of light and the GHz/meter unit conversion:
    20*log10(1e9) + 20*log10(4*pi / 299792458) == 32.44778
    32.44778 / 20 == 1.62238
"""

from __future__ import annotations

import math

from domain.coverage.errors import InvalidParameterError

FSPL_CONSTANT_DB = 32.44778
FSPL_CONSTANT_EXPONENT = 1.62238


def signal_budget(
    output_power_dbw: float,
    sensitivity_dbw: float,
    gain_tx_dbi: float,
    gain_rx_dbi: float,
) -> float:
    """Largest path loss the link tolerates, in dB."""
    return output_power_dbw + gain_tx_dbi + gain_rx_dbi + sensitivity_dbw


def free_space_path_loss(
    distance_m: float,
    frequency_ghz: float,
    gain_tx_dbi: float,
    gain_rx_dbi: float,
) -> float:
    """Free space path loss between two antennas, net of both gains.

    Raises:
        InvalidParameterError: If distance or frequency is not positive
    """
    if not distance_m > 0:
        raise InvalidParameterError(f"distance must be positive, got {distance_m}")
    if not frequency_ghz > 0:
        raise InvalidParameterError(f"frequency must be positive, got {frequency_ghz}")
    return (
        20 * math.log10(distance_m)
        + 20 * math.log10(frequency_ghz)
        + FSPL_CONSTANT_DB
        - gain_tx_dbi
        - gain_rx_dbi
    )


def max_distance(
    frequency_ghz: float,
    output_power_dbw: float,
    sensitivity_dbw: float,
    gain_tx_dbi: float,
    gain_rx_dbi: float,
) -> float:
    """Distance in meters at which free space loss uses up the whole budget.

    Inverts :func:`free_space_path_loss` for distance, ignoring obstacles.

    Raises:
        InvalidParameterError: If frequency is not positive or the result
            is not a finite number
    """
    if not frequency_ghz > 0:
        raise InvalidParameterError(f"frequency must be positive, got {frequency_ghz}")
    budget = signal_budget(output_power_dbw, sensitivity_dbw, gain_tx_dbi, gain_rx_dbi)
    exponent = budget / 20 - FSPL_CONSTANT_EXPONENT - math.log10(frequency_ghz)
    try:
        distance = math.pow(10, exponent)
    except OverflowError as e:
        raise InvalidParameterError(
            f"maximum distance overflows for a budget of {budget} dB"
        ) from e
    if not math.isfinite(distance):
        raise InvalidParameterError(
            f"maximum distance is not finite for a budget of {budget} dB"
        )
    return distance
