from .config import ToleranceSpec
from .errors import (
    EpsteinZetaError,
    InvalidLatticeError,
    NonConvergenceError,
    NumericOverflowError,
)
from .lattice import QuadraticForm
from .summation import EpsteinZeta, EvaluationResult
from .zeta import (
    evaluate_epstein_zeta,
    evaluate_epstein_zeta_reg,
    evaluate_incomplete_bessel,
)

__version__ = "0.1.0"
