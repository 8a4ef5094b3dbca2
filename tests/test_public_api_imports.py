def test_public_imports() -> None:
    # A lightweight contract test: keep the most common imports stable.
    import epsteinpy

    assert hasattr(epsteinpy, "__version__")

    from epsteinpy import (  # noqa: F401
        EpsteinZeta,
        QuadraticForm,
        ToleranceSpec,
        evaluate_epstein_zeta,
        evaluate_epstein_zeta_reg,
        evaluate_incomplete_bessel,
    )
