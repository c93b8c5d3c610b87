"""Run-time configuration for Laplacian momentum mixing."""
import numbers
import warnings

from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np


# namelist option -> config field
NAMELIST_OPTIONS = {
    "config_use_mom_del2": "use_del2",
    "config_mom_del2": "del2_coefficient",
    "config_use_mom_del2_tensor": "use_del2_tensor",
    "config_mom_del2_tensor": "del2_tensor_coefficient",
}


@dataclass(frozen=True)
class HmixDel2Config:
    """Already-validated scalar parameters consumed by the del2 operators.

    Parameters
    ----------
    use_del2 : bool
        Switch for the scalar (divergence / vorticity) form
    del2_coefficient : float
        Viscosity of the scalar form, in m^2/s. The term is only active if > 0.
    use_del2_tensor : bool
        Switch for the tensor (strain-rate) form
    del2_tensor_coefficient : float
        Viscosity of the tensor form, in m^2/s. Its sign is not checked.
    """

    use_del2: bool = False
    del2_coefficient: float = 10.0
    use_del2_tensor: bool = False
    del2_tensor_coefficient: float = 10.0

    def __post_init__(self):
        for name in ["use_del2", "use_del2_tensor"]:
            value = getattr(self, name)
            if not isinstance(value, (bool, np.bool_)):
                raise TypeError(f"{name} must be a bool, got {value!r}.")

        for name in ["del2_coefficient", "del2_tensor_coefficient"]:
            value = getattr(self, name)
            if isinstance(value, (bool, np.bool_)) or not isinstance(value, numbers.Real):
                raise ValueError(f"{name} must be a real number, got {value!r}.")
            if not np.isfinite(value):
                raise ValueError(f"{name} must be finite, got {value!r}.")

        if self.use_del2 and self.del2_coefficient <= 0:
            warnings.warn(
                f"use_del2 is set but del2_coefficient = {self.del2_coefficient} is not positive; "
                "the scalar Laplacian term will stay off.",
                stacklevel=3,
            )

    @classmethod
    def from_namelist(cls, namelist: Mapping[str, Any]):
        """Build a config from MPAS-Ocean style namelist options.

        Options not given fall back to the defaults; unrelated options are ignored.
        """
        kwargs = {
            field: namelist[option]
            for option, field in NAMELIST_OPTIONS.items()
            if option in namelist
        }
        return cls(**kwargs)
