import numpy as np
from scipy import sparse

# Euler angles are [x, y, z] = rotations about the world X, Y and Z axes,
# composed as R = Rz(z) @ Ry(y) @ Rx(x) (intrinsic z-y'-x'').

DURATION_EPS = 1e-6


def _rot_x(a):
    c, s = np.cos(a), np.sin(a)
    return np.array([[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]])

def _rot_y(a):
    c, s = np.cos(a), np.sin(a)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])

def _rot_z(a):
    c, s = np.cos(a), np.sin(a)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])

def _drot_x(a):
    c, s = np.cos(a), np.sin(a)
    return np.array([[0.0, 0.0, 0.0], [0.0, -s, -c], [0.0, c, -s]])

def _drot_y(a):
    c, s = np.cos(a), np.sin(a)
    return np.array([[-s, 0.0, c], [0.0, 0.0, 0.0], [-c, 0.0, -s]])

def _drot_z(a):
    c, s = np.cos(a), np.sin(a)
    return np.array([[-s, -c, 0.0], [c, -s, 0.0], [0.0, 0.0, 0.0]])


def euler_zyx_to_matrix(phi):
    """
    Convert Euler angles [x, y, z] to the rotation matrix base -> world.
    """
    x, y, z = phi
    return _rot_z(z) @ _rot_y(y) @ _rot_x(x)

def euler_zyx_matrix_derivatives(phi):
    """
    Partial derivatives of euler_zyx_to_matrix w.r.t. each Euler angle.

    Returns:
        list of three (3, 3) arrays [dR/dx, dR/dy, dR/dz]
    """
    x, y, z = phi
    Rx, Ry, Rz = _rot_x(x), _rot_y(y), _rot_z(z)
    return [
        Rz @ Ry @ _drot_x(x),
        Rz @ _drot_y(y) @ Rx,
        _drot_z(z) @ Ry @ Rx,
    ]

def euler_rates_to_omega_matrix(phi):
    """
    Matrix M(phi) mapping Euler rates to angular velocity in world frame:
    omega_W = M(phi) @ phi_dot. Independent of the x angle.
    """
    _, y, z = phi
    cy, sy = np.cos(y), np.sin(y)
    cz, sz = np.cos(z), np.sin(z)
    return np.array([
        [cy*cz, -sz, 0.0],
        [cy*sz,  cz, 0.0],
        [  -sy, 0.0, 1.0],
    ])

def euler_rates_to_omega_matrix_derivatives(phi):
    """
    First partials of M(phi).

    Returns:
        list of three (3, 3) arrays [dM/dx, dM/dy, dM/dz]
    """
    _, y, z = phi
    cy, sy = np.cos(y), np.sin(y)
    cz, sz = np.cos(z), np.sin(z)
    dM_dy = np.array([
        [-sy*cz, 0.0, 0.0],
        [-sy*sz, 0.0, 0.0],
        [   -cy, 0.0, 0.0],
    ])
    dM_dz = np.array([
        [-cy*sz, -cz, 0.0],
        [ cy*cz, -sz, 0.0],
        [   0.0, 0.0, 0.0],
    ])
    return [np.zeros((3, 3)), dM_dy, dM_dz]

def euler_rates_to_omega_matrix_second_derivatives(phi):
    """
    Second partials of M(phi), indexed [i][j] -> d2M/(dphi_i dphi_j).
    """
    _, y, z = phi
    cy, sy = np.cos(y), np.sin(y)
    cz, sz = np.cos(z), np.sin(z)
    zero = np.zeros((3, 3))
    d2M_dyy = np.array([
        [-cy*cz, 0.0, 0.0],
        [-cy*sz, 0.0, 0.0],
        [    sy, 0.0, 0.0],
    ])
    d2M_dyz = np.array([
        [ sy*sz, 0.0, 0.0],
        [-sy*cz, 0.0, 0.0],
        [   0.0, 0.0, 0.0],
    ])
    d2M_dzz = np.array([
        [-cy*cz,  sz, 0.0],
        [-cy*sz, -cz, 0.0],
        [   0.0, 0.0, 0.0],
    ])
    return [
        [zero, zero, zero],
        [zero, d2M_dyy, d2M_dyz],
        [zero, d2M_dyz, d2M_dzz],
    ]

def skew(v):
    """
    Cross-product matrix: skew(a) @ b == np.cross(a, b).
    """
    return np.array([
        [  0.0, -v[2],  v[1]],
        [ v[2],   0.0, -v[0]],
        [-v[1],  v[0],   0.0],
    ])

def _powers(t, dxdt):
    if dxdt == 0:
        return np.array([1.0, t, t**2, t**3])
    if dxdt == 1:
        return np.array([0.0, 1.0, 2.0*t, 3.0*t**2])
    if dxdt == 2:
        return np.array([0.0, 0.0, 2.0, 6.0*t])
    raise ValueError(f"derivative order {dxdt} not supported by cubic segments")

def hermite_node_weights(t, T, dxdt):
    """
    Weights of the cubic Hermite segment value w.r.t. its node values.
    Args:
        t: local time inside the segment
        T: segment duration
        dxdt: derivative order (0 position, 1 velocity, 2 acceleration)

    Returns:
        array (4,) weights for [p0, v0, p1, v1]
    """
    T = max(T, DURATION_EPS)
    # rows: d[a0, a1, a2, a3] / d[p0, v0, p1, v1]
    dA = np.array([
        [1.0, 0.0, -3.0/T**2,  2.0/T**3],
        [0.0, 1.0, -2.0/T,     1.0/T**2],
        [0.0, 0.0,  3.0/T**2, -2.0/T**3],
        [0.0, 0.0, -1.0/T,     1.0/T**2],
    ])
    return dA @ _powers(t, dxdt)

def hermite_value(p0, v0, p1, v1, t, T, dxdt):
    """
    Evaluate a cubic Hermite segment (vectorized over dimensions).
    """
    w = hermite_node_weights(t, T, dxdt)
    return w[0]*p0 + w[1]*v0 + w[2]*p1 + w[3]*v1

def hermite_value_wrt_duration(p0, v0, p1, v1, t, T, dxdt):
    """
    Partial derivative of a Hermite segment value w.r.t. its duration T,
    with the local time t held fixed.
    """
    T = max(T, DURATION_EPS)
    dp = p0 - p1
    da2 = 6.0*dp/T**3 + (2.0*v0 + v1)/T**2
    da3 = -6.0*dp/T**4 - 2.0*(v0 + v1)/T**3
    pw = _powers(t, dxdt)
    return da2*pw[2] + da3*pw[3]

def sparse_rows(blocks, n_cols):
    """
    Stack sparse/dense row blocks into one CSR matrix; None stands for zeros.
    Args:
        blocks: list of (n_rows, block) pairs
        n_cols: number of columns of every block

    Returns:
        csr_matrix of shape (sum(n_rows), n_cols)
    """
    parts = []
    for n_rows, block in blocks:
        if block is None:
            parts.append(sparse.csr_matrix((n_rows, n_cols)))
        else:
            parts.append(sparse.csr_matrix(block))
    if not parts:
        return sparse.csr_matrix((0, n_cols))
    return sparse.vstack(parts, format="csr")

def get_eval_times(total_time, dt):
    """
    Uniform evaluation grid over [0, total_time] that always contains both ends.
    """
    if dt is None:
        return np.array([0.0, float(total_time)])
    times = list(np.arange(0.0, total_time, dt))
    if total_time - times[-1] > 1e-9:
        times.append(total_time)
    return np.asarray(times, dtype=float)
