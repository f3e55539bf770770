"""
Terrain seen by the contact constraints. Heights are queried in world x/y;
the contact basis is [normal, tangent_x, tangent_y], each normalized.
"""
import numpy as np
from scipy import ndimage

X_, Y_ = 0, 1
NORMAL, TANGENT1, TANGENT2 = 0, 1, 2


class HeightMap:
    def get_height(self, x, y) -> float:
        raise NotImplementedError

    def get_height_derivative(self, dim, x, y) -> float:
        """dh/dx (dim=0) or dh/dy (dim=1)."""
        return 0.0

    def get_height_second_derivative(self, dim1, dim2, x, y) -> float:
        return 0.0

    def _basis_unnormalized(self, x, y):
        hx = self.get_height_derivative(X_, x, y)
        hy = self.get_height_derivative(Y_, x, y)
        return [np.array([-hx, -hy, 1.0]),
                np.array([1.0, 0.0, hx]),
                np.array([0.0, 1.0, hy])]

    def _basis_unnormalized_derivative(self, dim, x, y):
        hxd = self.get_height_second_derivative(X_, dim, x, y)
        hyd = self.get_height_second_derivative(Y_, dim, x, y)
        return [np.array([-hxd, -hyd, 0.0]),
                np.array([0.0, 0.0, hxd]),
                np.array([0.0, 0.0, hyd])]

    def get_basis(self, x, y):
        return [v / np.linalg.norm(v) for v in self._basis_unnormalized(x, y)]

    def get_basis_derivative(self, dim, x, y):
        """
        Derivative of the normalized basis w.r.t. x or y:
        d(v/|v|) = (I - u u^T) dv / |v|.
        """
        out = []
        for v, dv in zip(self._basis_unnormalized(x, y),
                         self._basis_unnormalized_derivative(dim, x, y)):
            n = np.linalg.norm(v)
            u = v / n
            out.append((dv - u * np.dot(u, dv)) / n)
        return out


class FlatGround(HeightMap):
    def __init__(self, height=0.0):
        self.height = float(height)

    def get_height(self, x, y):
        return self.height


class GridHeightMap(HeightMap):
    """
    Height grid centered at (0, 0), interpolated bilinearly. Inside one cell the
    interpolant is h = a + b*wx + c*wy + d*wx*wy, so its derivatives are exact.
    """

    def __init__(self, heightmap, grid_cell_length, smooth_sigma=None):
        heightmap = np.asarray(heightmap, dtype=float)
        if smooth_sigma:
            heightmap = ndimage.gaussian_filter(heightmap, smooth_sigma)
        self.heightmap = heightmap
        self.cell = float(grid_cell_length)

    def _cell(self, x, y):
        h, w = self.heightmap.shape
        gx = x / self.cell + w / 2
        gy = y / self.cell + h / 2
        x0 = int(np.clip(np.floor(gx), 0, w - 2))
        y0 = int(np.clip(np.floor(gy), 0, h - 2))
        Q = self.heightmap
        return (gx - x0, gy - y0,
                Q[y0, x0], Q[y0 + 1, x0], Q[y0, x0 + 1], Q[y0 + 1, x0 + 1])

    def get_height(self, x, y):
        wx, wy, Q11, Q12, Q21, Q22 = self._cell(x, y)
        return ((1 - wx) * (1 - wy) * Q11 + (1 - wx) * wy * Q12
                + wx * (1 - wy) * Q21 + wx * wy * Q22)

    def get_height_derivative(self, dim, x, y):
        wx, wy, Q11, Q12, Q21, Q22 = self._cell(x, y)
        if dim == X_:
            return ((1 - wy) * (Q21 - Q11) + wy * (Q22 - Q12)) / self.cell
        return ((1 - wx) * (Q12 - Q11) + wx * (Q22 - Q21)) / self.cell

    def get_height_second_derivative(self, dim1, dim2, x, y):
        if dim1 == dim2:
            return 0.0
        _, _, Q11, Q12, Q21, Q22 = self._cell(x, y)
        return (Q22 - Q21 - Q12 + Q11) / self.cell**2


def get_flat_heightmap(a=50, b=50, height=0.0):
    """
    Generate a flat heightmap with a constant height.
    a: number of rows
    b: number of columns
    height: constant height value
    """
    return np.full((a, b), height)

def get_stairs_heightmap(a=150, b=150, step_height=0.05, step_depth=25, start_col=0):
    """
    Generate a heightmap representing stairs rising in the x direction (columns).
    a: number of rows
    b: number of columns
    step_height: height increment for each step
    step_depth: depth (number of columns) per step
    start_col: the column index where the first step starts
    """
    heightmap = np.zeros((a, b))
    num_steps = (b - start_col) // step_depth
    for step in range(num_steps):
        col_start = start_col + step * step_depth
        col_end = min(start_col + (step + 1) * step_depth, b)
        heightmap[:, col_start:col_end] = step_height * (step + 1)
    return heightmap

def get_heightmap_ramp(a=150, b=150, ramp_height=0.5, ramp_depth=100, start_col=0):
    """
    Generate a heightmap representing a linear ramp rising in the x direction (columns),
    staying at ramp_height after the ramp ends.
    """
    heightmap = np.zeros((a, b), dtype=float)
    col_start = max(0, int(start_col))
    col_end = min(int(start_col + ramp_depth), b)
    if col_start >= col_end:
        return heightmap
    heightmap[:, col_start:col_end] = np.linspace(0.0, float(ramp_height), col_end - col_start)
    heightmap[:, col_end:] = ramp_height
    return heightmap
