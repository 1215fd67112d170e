# Observation validation
# FORBIDDEN: torch, models.*, training.*

import numpy as np
from typing import List, Tuple

from ..core.errors import ConfigurationError
from ..core.types import ObservationLayout


class ObservationValidator:
    """Check observations against the layout a model was built for."""

    @classmethod
    def check_dimension(cls, layout: ObservationLayout, expected_dim: int) -> None:
        """Validate layout size against a network input size.

        Raises:
            ConfigurationError: On mismatch
        """
        if layout.dimension != expected_dim:
            raise ConfigurationError(
                f"Observation dimension mismatch: layout produces {layout.dimension} "
                f"values, network expects {expected_dim}"
            )

    @classmethod
    def validate(cls, obs: np.ndarray, layout: ObservationLayout) -> Tuple[bool, List[str]]:
        """Check an observation is well formed.

        Args:
            obs: Observation array
            layout: Expected layout

        Returns:
            (is_valid, list of violations)
        """
        violations = []

        if obs.shape != (layout.dimension,):
            violations.append(f"Expected shape ({layout.dimension},), got {obs.shape}")
            return False, violations

        if not cls.check_nan_inf(obs):
            violations.append("Observation contains NaN or Inf")
            return False, violations

        if abs(obs[0]) > 1.0 + 1e-6:
            violations.append(f"Speed out of bounds: {obs[0]}")

        heading = obs[1:3]
        if np.any(np.abs(heading) > 1.0 + 1e-6):
            violations.append(f"Heading features out of bounds: {heading}")

        rays = obs[layout.POSE_FEATURES:]
        if np.any(rays < 0.0) or np.any(rays > 1.0):
            violations.append(f"Ray features out of bounds: {rays}")

        return len(violations) == 0, violations

    @classmethod
    def check_nan_inf(cls, obs: np.ndarray) -> bool:
        """Quick check for NaN or Inf values.
        
        Args:
            obs: Observation array
            
        Returns:
            True if observation is clean (no NaN/Inf)
        """
        return not (np.any(np.isnan(obs)) or np.any(np.isinf(obs)))
