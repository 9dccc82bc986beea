"""Three-point finite-difference weights on nonuniform grids.

Only coefficients live here. :mod:`pde_pricing.numerics.pde.operators`
scales them by the PDE coefficients to fill the operator's diagonals.
"""


def d1_central_nonuniform_coeffs(hm, hp):
    """Weights ``(dl, dd, du)`` with ``y'(x_i) ~ dl*y[i-1] + dd*y[i] + du*y[i+1]``.

    ``hm = x_i - x_{i-1}`` and ``hp = x_{i+1} - x_i``; scalars or arrays of
    equal shape. Exact for quadratics.
    """
    denom = hm * hp * (hm + hp)
    return -hp * hp / denom, (hp * hp - hm * hm) / denom, hm * hm / denom


def d2_central_nonuniform_coeffs(hm, hp):
    """Weights ``(dl, dd, du)`` for the second derivative, same layout as above."""
    width = hm + hp
    return 2.0 / (hm * width), -2.0 / (hm * hp), 2.0 / (hp * width)
