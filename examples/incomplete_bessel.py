"""
Example: Upper incomplete Bessel function

G_nu(k, r) = int_0^1 t^(-nu/2) exp(-pi k^2 / t) exp(-pi r^2 t) dt / t

is the kernel of the Epstein zeta function. This example evaluates it for the
reference arguments and checks the swap identity

G_nu(k, r) + G_{-nu}(r, k) = 2 (r/k)^(nu/2) K_{nu/2}(2 pi k r)
"""

import numpy as np
from scipy import special

from epsteinpy import evaluate_incomplete_bessel


def run_incomplete_bessel_example():
    print("\n" + "=" * 70)
    print("UPPER INCOMPLETE BESSEL FUNCTION")
    print("=" * 70)

    nu = 2.1
    k = np.array([1.2])
    r = np.array([1.3])

    forward = evaluate_incomplete_bessel(nu, 1, k, r)
    backward = evaluate_incomplete_bessel(-nu, 1, r, k)
    print(f"\nG_{nu}({k[0]}, {r[0]})   = {forward.real:.16e}")
    print(f"G_{-nu}({r[0]}, {k[0]})  = {backward.real:.16e}")

    big_k = np.pi * k[0] ** 2
    big_r = np.pi * r[0] ** 2
    bessel = 2 * (big_r / big_k) ** (nu / 4) * special.kv(nu / 2, 2 * np.sqrt(big_k * big_r))
    print(f"sum                = {(forward + backward).real:.16e}")
    print(f"2 (R/K)^(nu/4) K   = {bessel:.16e}")


if __name__ == "__main__":
    run_incomplete_bessel_example()
