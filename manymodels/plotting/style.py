"""Plot style configuration, file naming, and save helpers."""

from __future__ import annotations

import os
import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Sequence

import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from ..errors import GroupKey, format_key

OUTPUT_FORMATS: tuple[str, ...] = ("png", "pdf", "svg")
FIGURE_DPI = 300
KEY_SEPARATOR = "_"


@dataclass(frozen=True)
class PlotStyle:
    """Rendering options passed explicitly to every plotting function.

    Attributes mirror the matplotlib rcParams they control; :func:`rc_params`
    performs the mapping and :func:`style_context` applies it temporarily.
    """

    base_fontsize: float = 11.0
    title_fontsize: float = 13.0
    label_fontsize: float = 11.0
    tick_fontsize: float = 10.0
    legend_fontsize: float = 10.0
    linewidth: float = 1.8
    markersize: float = 5.0
    point_alpha: float = 0.7
    grid_alpha: float = 0.25
    figsize: tuple[float, float] = (6.0, 4.0)
    dpi: int = 150
    font_family: str = "sans-serif"
    point_color: str = "#1f77b4"
    line_color: str = "#d62728"
    extra_rc: Dict[str, Any] = field(default_factory=dict)


DEFAULT_STYLE = PlotStyle()
PUBLICATION_STYLE = PlotStyle(font_family="serif", dpi=FIGURE_DPI, figsize=(7.0, 4.2))


def rc_params(style: PlotStyle = DEFAULT_STYLE) -> Dict[str, Any]:
    """Translate a :class:`PlotStyle` into matplotlib rcParams."""
    params = {
        "font.family": style.font_family,
        "font.size": style.base_fontsize,
        "axes.titlesize": style.title_fontsize,
        "axes.labelsize": style.label_fontsize,
        "xtick.labelsize": style.tick_fontsize,
        "ytick.labelsize": style.tick_fontsize,
        "legend.fontsize": style.legend_fontsize,
        "lines.linewidth": style.linewidth,
        "lines.markersize": style.markersize,
        "axes.spines.top": False,
        "axes.spines.right": False,
        "axes.grid": True,
        "grid.alpha": style.grid_alpha,
        "grid.linestyle": ":",
        "figure.figsize": style.figsize,
        "savefig.dpi": style.dpi,
    }
    params.update(style.extra_rc)
    return params


@contextmanager
def style_context(style: PlotStyle = DEFAULT_STYLE) -> Iterator[None]:
    """Apply ``style`` for the duration of a ``with`` block only."""
    with plt.rc_context(rc_params(style)):
        yield


def sanitize_filename(name: str) -> str:
    """Normalize a filename component into a stable, filesystem-safe token."""
    text = re.sub(r"\s+", "_", str(name).strip())
    text = re.sub(r"[^A-Za-z0-9._-]+", "_", text)
    text = re.sub(r"_+", "_", text).strip("._")
    return text or "figure"


def group_filename(
    key: GroupKey,
    suffix: str | None = None,
    ext: str = "png",
    sep: str = KEY_SEPARATOR,
) -> str:
    """Build ``<value1><sep><value2><sep><suffix>.<ext>`` from a group key.

    Args:
        key (GroupKey): ``(column, value)`` pairs of one group.
        suffix (str | None): Trailing token such as ``"plot"``.
        ext (str): File extension without the dot.
        sep (str): Separator between tokens.

    Returns:
        str: File name (no directory).
    """
    parts = [sanitize_filename(value) for _, value in key]
    if suffix:
        parts.append(sanitize_filename(suffix))
    return f"{sep.join(parts)}.{ext.lstrip('.')}"


def group_filenames(
    keys: Sequence[GroupKey],
    suffix: str | None = None,
    ext: str = "png",
    sep: str = KEY_SEPARATOR,
) -> List[str]:
    """Build one file name per key with :func:`group_filename`.

    Raises:
        ValueError: If distinct keys sanitize to the same name. The message
            names every colliding key.
    """
    names = [group_filename(key, suffix, ext=ext, sep=sep) for key in keys]
    seen: Dict[str, List[GroupKey]] = {}
    for key, name in zip(keys, names):
        seen.setdefault(name, []).append(key)
    clashes = {name: ks for name, ks in seen.items() if len(ks) > 1}
    if clashes:
        details = "; ".join(
            f"{name} <- " + " | ".join(format_key(k) for k in ks)
            for name, ks in clashes.items()
        )
        raise ValueError(f"Group keys map to the same file name: {details}")
    return names


def save_figure(
    fig: Figure,
    path: str | os.PathLike,
    style: PlotStyle = DEFAULT_STYLE,
    *,
    formats: Sequence[str] | None = None,
    close: bool = True,
    bbox_inches: str = "tight",
    pad_inches: float = 0.12,
) -> Path:
    """Save a figure, creating parent folders.

    Args:
        fig (matplotlib.figure.Figure): Figure to write.
        path (str | os.PathLike): Target path. Its suffix picks the format
            unless ``formats`` is given, in which case one file per format is
            written next to it.
        style (PlotStyle): Supplies the raster resolution.
        formats (Sequence[str] | None): Subset of ``OUTPUT_FORMATS``.
        close (bool): Close the figure afterwards to release memory.

    Returns:
        pathlib.Path: The primary written path.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    if formats:
        unknown = [ext for ext in formats if ext not in OUTPUT_FORMATS]
        if unknown:
            raise ValueError(
                f"Unsupported formats {unknown}. Expected a subset of {OUTPUT_FORMATS}."
            )
        targets = [target.with_suffix(f".{ext}") for ext in formats]
    else:
        targets = [target]

    for out in targets:
        fig.savefig(
            str(out),
            dpi=style.dpi if out.suffix != ".svg" else None,
            bbox_inches=bbox_inches,
            pad_inches=pad_inches,
        )
    if close:
        plt.close(fig)
    return targets[0]
