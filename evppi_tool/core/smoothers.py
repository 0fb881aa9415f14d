"""Univariate nonparametric regression strategies.

A smoother estimates E[y | x] from paired samples. The EVPPI estimator only
relies on ``fit(x, y)`` returning fitted values aligned with the inputs, so
any regression with that contract can be plugged in.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Type

import numpy as np
from numpy.polynomial import Polynomial
from scipy.interpolate import BSpline

# Fewer distinct abscissae than this cannot support a spline fit
MIN_SPLINE_POINTS = 5
SPLINE_DEGREE = 3
# Relative penalties searched by generalized cross-validation
GCV_PENALTIES = np.logspace(-4, 6, 41)


def _check_xy(x, y):
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.ndim != 1 or y.ndim != 1:
        raise ValueError("Smoother inputs must be one-dimensional")
    if x.shape != y.shape:
        raise ValueError(f"Length mismatch: x has {x.shape[0]} values, y has {y.shape[0]}")
    if x.size == 0:
        raise ValueError("Cannot fit a smoother to empty data")
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
        raise ValueError("Smoother inputs must be finite")
    return x, y


def _few_distinct_fit(x, y, n_distinct: int, min_distinct: int) -> np.ndarray:
    """Group means for tied x; an error when every x is distinct.

    With no ties the group means reproduce y exactly, which would report a
    perfect fit instead of an estimate.
    """
    if n_distinct == x.size:
        raise ValueError(
            f"At least {min_distinct} distinct x values are needed to estimate E[y | x], got {x.size}"
        )
    unique_x, inverse, counts = np.unique(x, return_inverse=True, return_counts=True)
    inverse = inverse.reshape(-1)
    return (np.bincount(inverse, weights=y) / counts)[inverse]


def bspline_basis(x: np.ndarray, n_segments: int, degree: int = SPLINE_DEGREE) -> np.ndarray:
    """Dense B-spline design matrix on equally spaced knots spanning ``x``.

    Returns:
        Array of shape ``(len(x), n_segments + degree)``
    """
    lo, hi = x.min(), x.max()
    pad = 1e-6 * (hi - lo)
    step = (hi - lo + 2 * pad) / n_segments
    knots = (lo - pad) + step * np.arange(-degree, n_segments + degree + 1)
    return BSpline.design_matrix(x, knots, degree).toarray()


class Smoother(ABC):
    """Regression of y on a single covariate x."""

    name: str = "smoother"

    @abstractmethod
    def fit(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        """Fit the regression and return fitted values in the order of ``x``."""

    def describe(self) -> Dict[str, Any]:
        return {'name': self.name}


class SmoothingSplineSmoother(Smoother):
    """Penalized cubic regression spline (P-spline).

    E[y | x] is expanded in cubic B-splines on ``n_segments`` equally spaced
    intervals over the range of x, with a second-order difference penalty on
    the coefficients. The basis size is fixed, so the normal equations stay
    small and well conditioned however many draws crowd one interval.

    ``lam`` is relative to the scale of the design (trace ratio of the cross
    product and penalty matrices). When it is None the penalty is chosen by
    generalized cross-validation over ``GCV_PENALTIES``.
    """

    name = "spline"

    def __init__(self, lam: Optional[float] = None, n_segments: int = 20):
        if lam is not None and lam < 0:
            raise ValueError(f"Smoothing penalty must be non-negative, got {lam}")
        if n_segments < 1:
            raise ValueError(f"Number of spline segments must be positive, got {n_segments}")
        self.lam = lam
        self.n_segments = n_segments

    def fit(self, x, y):
        x, y = _check_xy(x, y)

        n_distinct = np.unique(x).size
        if n_distinct < MIN_SPLINE_POINTS:
            return _few_distinct_fit(x, y, n_distinct, MIN_SPLINE_POINTS)

        # Centered y keeps the solve accurate when the outcome sits far from zero
        y_mean = y.mean()
        yc = y - y_mean
        basis = bspline_basis((x - x.mean()) / x.std(), min(self.n_segments, n_distinct - 1))

        gram = basis.T @ basis
        rhs = basis.T @ yc
        difference = np.diff(np.eye(basis.shape[1]), n=2, axis=0)
        penalty = difference.T @ difference
        scale = np.trace(gram) / np.trace(penalty)

        if self.lam is not None:
            coef = np.linalg.solve(gram + self.lam * scale * penalty, rhs)
            return basis @ coef + y_mean

        n = x.size
        best_score, best_fit = np.inf, None
        for lam in GCV_PENALTIES:
            system = gram + lam * scale * penalty
            fitted = basis @ np.linalg.solve(system, rhs)
            edf = np.trace(np.linalg.solve(system, gram))
            if n - edf <= 0:
                continue
            score = n * np.sum((yc - fitted) ** 2) / (n - edf) ** 2
            if score < best_score:
                best_score, best_fit = score, fitted

        if best_fit is None:
            raise ValueError(f"No smoothing penalty leaves residual degrees of freedom for {n} samples")
        return best_fit + y_mean

    def describe(self):
        return {'name': self.name, 'lam': self.lam, 'n_segments': self.n_segments}


class PolynomialSmoother(Smoother):
    """Least-squares polynomial in x.

    Cheaper than the spline but can only capture smooth, low-order trends.
    """

    name = "polynomial"

    def __init__(self, degree: int = 3):
        if degree < 0:
            raise ValueError(f"Polynomial degree must be non-negative, got {degree}")
        self.degree = degree

    def fit(self, x, y):
        x, y = _check_xy(x, y)
        n_distinct = np.unique(x).size
        if n_distinct <= self.degree + 1:
            return _few_distinct_fit(x, y, n_distinct, self.degree + 2)
        # Polynomial.fit maps x onto [-1, 1] internally
        polynomial = Polynomial.fit(x, y, self.degree)
        return polynomial(x)

    def describe(self):
        return {'name': self.name, 'degree': self.degree}


SMOOTHERS: Dict[str, Type[Smoother]] = {
    SmoothingSplineSmoother.name: SmoothingSplineSmoother,
    PolynomialSmoother.name: PolynomialSmoother,
}


def get_smoother(name: str = "spline", **kwargs) -> Smoother:
    """Create a smoother by name.

    Args:
        name: "spline" or "polynomial"
        **kwargs: Constructor arguments of the smoother

    Returns:
        Smoother instance
    """
    smoother_cls = SMOOTHERS.get(name.lower())
    if smoother_cls is None:
        raise ValueError(f"Unknown smoother: {name!r}. Expected one of {sorted(SMOOTHERS)}")
    return smoother_cls(**kwargs)
