"""Apply a sort-index grid to reorder swath grids by row."""

import logging

import numpy as np

logger = logging.getLogger(__name__)


def check_index(sort_index: np.ndarray, height: int):
    """Validate that every sort index is a row of a grid of `height` rows."""
    if not np.issubdtype(sort_index.dtype, np.integer):
        raise TypeError(f"Sort index must be an integer array, not: {sort_index.dtype}")
    if sort_index.size and (sort_index.min() < 0 or sort_index.max() >= height):
        raise ValueError(
            f"Sort index values must lie in [0, {height}), found [{sort_index.min()}, {sort_index.max()}]"
        )
    return sort_index


def check_grids(sort_index: np.ndarray, grid: np.ndarray):
    """Validate a sort-index/grid pair, returning the grid as an array."""
    grid = np.asarray(grid)
    if grid.ndim != 2:
        raise ValueError(f"Grid must be 2D with a single channel, not shape {grid.shape}")
    if sort_index.shape != grid.shape:
        raise ValueError(f"Sort index shape {sort_index.shape} does not match grid shape {grid.shape}")
    check_index(sort_index, grid.shape[0])
    if grid.dtype.kind not in "iuf":
        raise TypeError(f"Unsupported grid type: {grid.dtype}")
    return grid


def gather(sort_index: np.ndarray, src: np.ndarray) -> np.ndarray:
    """Sort a grid by rows: ``dst[y, x] = src[sort_index[y, x], x]``.

    Parameters
    ----------
    sort_index : np.ndarray
        Integer grid of source rows, same shape as `src`.
    src : np.ndarray
        Grid of any integer or floating point type.

    Returns
    -------
    np.ndarray
        New grid with the same type as `src`.

    """
    src = check_grids(sort_index, src)
    return np.take_along_axis(src, sort_index.astype(np.intp, copy=False), axis=0)


def scatter(sort_index: np.ndarray, src: np.ndarray) -> np.ndarray:
    """Undo a sort: ``dst[sort_index[y, x], x] = src[y, x]``.

    Rows are written in increasing order, so when the sort index is not a
    permutation the last row written to a cell wins, and cells that no row
    maps to are left at zero.

    Parameters
    ----------
    sort_index : np.ndarray
        Integer grid of source rows, same shape as `src`.
    src : np.ndarray
        Sorted grid of any integer or floating point type.

    Returns
    -------
    np.ndarray
        New grid with the same type as `src`.

    """
    src = check_grids(sort_index, src)
    dst = np.zeros_like(src)
    cols = np.arange(src.shape[1])
    for y in range(src.shape[0]):
        dst[sort_index[y], cols] = src[y]
    return dst


def written_mask(sort_index: np.ndarray) -> np.ndarray:
    """Cells that `scatter` writes to, i.e., rows some sorted row maps back to.

    Where the sort index is not a permutation, the cells that are not written
    keep the zero fill of `scatter`.
    """
    check_index(sort_index, sort_index.shape[0])
    mask = np.zeros(sort_index.shape, dtype=bool)
    cols = np.broadcast_to(np.arange(sort_index.shape[1]), sort_index.shape)
    mask[sort_index, cols] = True
    return mask


def is_permutation(sort_index: np.ndarray) -> bool:
    """Check whether every column of a sort index is a permutation of its rows."""
    check_index(sort_index, sort_index.shape[0])
    counts = np.zeros(sort_index.shape, dtype=np.int32)
    cols = np.broadcast_to(np.arange(sort_index.shape[1]), sort_index.shape)
    np.add.at(counts, (sort_index, cols), 1)
    return bool((counts == 1).all())
