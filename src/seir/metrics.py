"""Goodness-of-fit metrics for modelled vs observed case series.

Includes SSE (the solver objective), RMSE/R2, and a summary over a
sequence of solver estimates."""


from typing import Dict, Optional, Sequence
import numpy as np


def sse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    return float(np.sum((y_true - y_pred) ** 2))


def rmse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    y_true = np.asarray(y_true, dtype=float)
    if y_true.size == 0:
        return 0.0
    return float(np.sqrt(sse(y_true, y_pred) / y_true.size))


def r2(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    ss_res = np.sum((y_true - y_pred) ** 2)
    ss_tot = np.sum((y_true - np.mean(y_true)) ** 2)
    # Guard against zero-variance targets.
    if ss_tot == 0:
        return 0.0
    return float(1.0 - ss_res / ss_tot)


def fit_summary(
    estimates: Sequence,
    observed: Optional[np.ndarray] = None,
    modelled: Optional[np.ndarray] = None,
) -> Dict[str, float]:
    """Summarize R0 estimates and their residuals.

    With observed and modelled cumulative cases, RMSE and R2 of the replayed
    fit are added.
    """
    if not estimates:
        # Keep the schema stable for empty runs.
        summary = {"n": 0, "r0_mean": 0.0, "r0_min": 0.0, "r0_max": 0.0, "residual_total": 0.0}
    else:
        r0 = np.asarray([e.r0 for e in estimates], dtype=float)
        residual = np.asarray([e.residual for e in estimates], dtype=float)
        summary = {
            "n": int(r0.size),
            "r0_mean": float(np.mean(r0)),
            "r0_min": float(np.min(r0)),
            "r0_max": float(np.max(r0)),
            "residual_total": float(np.sum(residual)),
        }
    if observed is not None and modelled is not None:
        summary["rmse"] = rmse(observed, modelled)
        summary["r2"] = r2(observed, modelled)
    return summary
