"""
Example: Madelung constant of rock salt

The electrostatic energy of an ion in the NaCl crystal is given by the
alternating lattice sum

    M = sum'_{m in Z^3} (-1)^(m1 + m2 + m3) / |m|

which is the Epstein zeta function of the cubic lattice with exponent nu = 1,
shift x = 0 and phase vector y = (1/2, 1/2, 1/2).
"""

import numpy as np
from epsteinpy import EpsteinZeta, QuadraticForm, evaluate_epstein_zeta

MADELUNG_NACL = -1.7475645946331822


def run_madelung_example():
    print("\n" + "=" * 70)
    print("MADELUNG CONSTANT OF NaCl")
    print("=" * 70)

    basis = np.eye(3)
    x = np.zeros(3)
    y = np.full(3, 0.5)

    value = evaluate_epstein_zeta(1.0, 3, basis, x, y)
    print(f"\nZ(0, y)           = {value.real:.16f}")
    print(f"reference         = {MADELUNG_NACL:.16f}")
    print(f"relative error    = {abs(value.real - MADELUNG_NACL) / abs(MADELUNG_NACL):.2e}")

    # The same evaluation with diagnostics
    result = EpsteinZeta(QuadraticForm.from_basis(basis)).evaluate(1.0, x, y)
    print(f"\nestimated error   = {result.error:.2e}")
    print(f"lambda            = {result.splitting_parameter:.4f}")
    print(f"lattice points    = {result.direct_points} direct, {result.reciprocal_points} reciprocal")


if __name__ == "__main__":
    run_madelung_example()
