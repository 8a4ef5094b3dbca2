"""Low-level numerical kernels and special functions.

This subpackage contains the scaled incomplete Gamma functions (Numba
accelerated), the tanh-sinh quadrature and the incomplete Bessel function
built on top of them.
"""
