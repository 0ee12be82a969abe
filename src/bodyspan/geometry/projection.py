"""
Pinhole Projection
==================

Pure functions relating pixel sizes to real sizes under a pinhole camera.

Model:
    A segment of real length L at distance D from the camera projects to
    p pixels on a sensor with focal length f (in pixels):

        p / f = L / D                       (similar triangles)

    With a horizontal field of view FOV over a frame W pixels wide:

        f = W / (2 * tan(FOV / 2))

    Known-Reference mode applies the relation twice: once to recover D
    from a known L_ref, then again to recover an unknown L_target.
    Fixed-Distance mode fixes D and folds D / f into a single ratio:

        r = D / f = 2 * D * tan(FOV / 2) / W

All functions are pure and raise nothing for degenerate inputs other than
ValueError on non-positive frame sizes or angles. Callers decide how a
zero divisor maps to their own notion of "unavailable".
"""

import math
from typing import Tuple

import numpy as np

from bodyspan.models.landmarks import Landmark


def focal_length_px(width: float, fov_rad: float) -> float:
    """
    Focal length in pixel units.

    Args:
        width: Frame width in pixels
        fov_rad: Horizontal field of view in radians, in (0, pi)

    Returns:
        f = W / (2 * tan(FOV / 2))
    """
    if width <= 0:
        raise ValueError("width must be positive")
    if not 0 < fov_rad < math.pi:
        raise ValueError("fov_rad must be in (0, pi)")
    return width / (2.0 * math.tan(fov_rad / 2.0))


def to_pixels(landmark: Landmark, width: float, height: float) -> Tuple[float, float]:
    """Scale a normalized landmark to frame pixel coordinates."""
    return landmark.x * width, landmark.y * height


def pixel_separation(
    a: Landmark,
    b: Landmark,
    width: float,
    height: float,
    use_depth: bool = False,
) -> float:
    """
    Euclidean distance between two landmarks in pixels.

    x is scaled by width and y by height. When use_depth is set and both
    landmarks carry z, the depth difference is scaled by width (z shares
    x's normalized unit) and included in the norm.

    Args:
        a, b: Landmarks on the same subject (or across subjects)
        width, height: Frame size in pixels
        use_depth: Include the z component

    Returns:
        Separation in pixels (>= 0)
    """
    delta = [(b.x - a.x) * width, (b.y - a.y) * height]
    if use_depth and a.z is not None and b.z is not None:
        delta.append((b.z - a.z) * width)
    return float(np.linalg.norm(np.asarray(delta, dtype=np.float64)))


def distance_from_reference(
    reference_length: float,
    focal_px: float,
    reference_px: float,
) -> float:
    """
    Camera-to-subject distance from a segment of known length.

    D = L_ref * f / p_ref

    Returns inf (or nan) for a zero reference separation; callers must
    treat non-finite results as unavailable.
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.float64(reference_length) * focal_px / np.float64(reference_px))


def length_at_distance(pixels: float, distance: float, focal_px: float) -> float:
    """
    Real length of a segment at a known distance.

    L = p * D / f
    """
    return pixels * distance / focal_px


def pixel_to_cm_ratio(distance: float, width: float, fov_rad: float) -> float:
    """
    Real length per pixel at a fixed distance.

    r = 2 * D * tan(FOV / 2) / W, algebraically equal to D / f.
    """
    if width <= 0:
        raise ValueError("width must be positive")
    return 2.0 * distance * math.tan(fov_rad / 2.0) / width
