"""Self-heating compensation for UD-CO2S temperature and humidity.

The sensor's onboard humidity is relative to its own (self-heated)
temperature. The correction re-references it to the ambient temperature
using the ratio of saturation vapor pressures (Magnus form).
"""

from datetime import datetime

from co2_sensor_lib import protocol
from co2_sensor_lib.models import RawFrame, Reading


def correct_temperature(raw_temperature: float) -> float:
    """Return ambient temperature for a raw sensor temperature."""
    return raw_temperature - protocol.TEMPERATURE_OFFSET


def _saturation_exponent(temperature: float) -> float:
    return 10.0 ** (
        protocol.MAGNUS_A * temperature / (temperature + protocol.MAGNUS_B)
    )


def correct_humidity(raw_humidity: float, raw_temperature: float) -> float:
    """Re-reference relative humidity from raw to corrected temperature.

    Args:
        raw_humidity: Relative humidity reported by the sensor (%)
        raw_temperature: Temperature reported by the sensor (°C)

    Returns:
        Relative humidity at the corrected ambient temperature (%)
    """
    corrected = correct_temperature(raw_temperature)
    return (
        raw_humidity
        * _saturation_exponent(raw_temperature)
        / _saturation_exponent(corrected)
    )


def compensate(raw: RawFrame, timestamp: datetime) -> Reading:
    """Build a Reading from raw frame values. CO2 passes through unchanged."""
    return Reading(
        co2=raw.co2,
        humidity=correct_humidity(raw.humidity, raw.temperature),
        temperature=correct_temperature(raw.temperature),
        timestamp=timestamp,
    )
