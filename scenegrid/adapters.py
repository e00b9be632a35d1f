from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import numpy as np

from .errors import SceneDataError
from .layers import LayerData


try:
    import pandas as pd
except ImportError:  # pragma: no cover - optional dependency
    pd = None  # type: ignore[assignment]

try:
    import torch
except ImportError:  # pragma: no cover - optional dependency
    torch = None  # type: ignore[assignment]


def is_dataframe(value: Any) -> bool:
    return pd is not None and isinstance(value, pd.DataFrame)


def normalize_xy(y: Any, *, x: Any = None, source_name: str | None = None) -> LayerData:
    """Build one layer's points from a y vector and an optional x vector.

    Missing x means the sample index. Points where either coordinate is not
    finite stay in the arrays but are masked out.
    """
    if is_dataframe(y):
        return normalize_columns(y, source_name=source_name)
    y_arr = as_float_vector(y, label="y")
    if y_arr.size == 0:
        raise SceneDataError("empty series")
    x_arr = np.arange(y_arr.size, dtype=np.float64) if x is None else as_float_vector(x, label="x")
    if x_arr.size != y_arr.size:
        raise SceneDataError(f"x and y length mismatch: {x_arr.size} != {y_arr.size}")
    mask = np.isfinite(x_arr) & np.isfinite(y_arr)
    if not mask.any():
        raise SceneDataError("series contains no finite points")
    return LayerData(x=x_arr, y=y_arr, mask=mask, source_name=source_name)


def normalize_columns(
    frame: Any,
    *,
    y: str | None = None,
    x: str | None = None,
    source_name: str | None = None,
) -> LayerData:
    """Read a layer out of DataFrame columns.

    Without a ``y`` column name the frame must hold exactly one numeric column.
    """
    if not is_dataframe(frame):
        raise SceneDataError("column input must be a pandas DataFrame")
    y_col = _single_numeric_column(frame) if y is None else _column(frame, y)
    x_col = None if x is None else _column(frame, x)
    return normalize_xy(y_col, x=x_col, source_name=source_name if source_name is not None else y_col.name)


def _column(frame: Any, name: str) -> Any:
    if name not in frame.columns:
        raise SceneDataError(f"column not found: {name}")
    return frame[name]


def _single_numeric_column(frame: Any) -> Any:
    numeric = [c for c in frame.columns if pd.api.types.is_numeric_dtype(frame[c])]
    if len(numeric) != 1:
        raise SceneDataError(f"expected one numeric column, found {len(numeric)}; name it with y_column")
    return frame[numeric[0]]


def as_float_vector(value: Any, *, label: str) -> np.ndarray:
    if value is None:
        raise SceneDataError(f"{label} input is required")
    if torch is not None and isinstance(value, torch.Tensor):
        arr = value.detach().cpu().to(torch.float64).numpy()
    elif pd is not None and isinstance(value, pd.Series):
        arr = value.to_numpy()
    elif isinstance(value, np.ndarray):
        arr = value
    elif isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        arr = np.asarray(value, dtype=object)
    else:
        raise SceneDataError(f"unsupported {label} input type: {type(value)!r}")
    if arr.ndim != 1:
        raise SceneDataError(f"{label} must be 1-D, got shape {arr.shape}")
    if arr.dtype.kind in "iufb":
        return arr.astype(np.float64, copy=False)
    return np.array([_as_float(item, label, i) for i, item in enumerate(arr.tolist())], dtype=np.float64)


def _as_float(item: Any, label: str, index: int) -> float:
    if item is None:
        return np.nan
    try:
        return float(item)
    except (TypeError, ValueError) as exc:
        raise SceneDataError(f"{label} contains non-numeric value at index {index}: {item!r}") from exc


def normalize_grid(values: Any, *, source_name: str | None = None) -> LayerData:
    if torch is not None and isinstance(values, torch.Tensor):
        arr = values.detach().cpu().to(torch.float64).numpy()
    elif is_dataframe(values):
        arr = values.to_numpy(dtype=np.float64)
    else:
        try:
            arr = np.asarray(values, dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise SceneDataError(f"grid values must be numeric: {exc}") from exc
    if arr.ndim != 2 or arr.size == 0:
        raise SceneDataError("grid values must be a non-empty 2-D array")
    finite = np.isfinite(arr)
    if not np.any(finite):
        raise SceneDataError("grid values contain no finite points")
    rows, cols = arr.shape
    # Cell centers; y follows row index.
    x = np.tile(np.arange(cols, dtype=np.float64), rows)
    y = np.repeat(np.arange(rows, dtype=np.float64), cols)
    return LayerData(x=x, y=y, mask=finite.reshape(-1), source_name=source_name, values=arr)
