# Telemetry module - Observation encoding
# FORBIDDEN: torch, models.*, training.*

from .sensors import SensorEncoder, cast_rays
from .validation import ObservationValidator
