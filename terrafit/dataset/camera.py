import numpy as np


class CameraIntrinsics(object):
    """
    Pinhole model of the depth camera.

    Defaults are the published calibration of the Freiburg 1 Kinect used in
    the TUM RGB-D benchmark, whose depth images store millimetres times five
    (``depth_scale = 5000`` raw units per metre).

    Parameters
    ----------
    fx, fy : float
        Focal lengths in pixels.
    cx, cy : float
        Optical centre in pixels.
    depth_scale : float
        Raw depth units per metre.
    """
    def __init__(self, fx=517.3, fy=516.5, cx=318.6, cy=255.3, depth_scale=5000.0):
        self.fx = float(fx)
        self.fy = float(fy)
        self.cx = float(cx)
        self.cy = float(cy)
        self.depth_scale = float(depth_scale)
        if self.fx == 0.0 or self.fy == 0.0 or self.depth_scale == 0.0:
            raise ValueError("Focal lengths and depth scale must be non-zero.")

    def back_project(self, depth, stride=1):
        """
        Lift every valid depth pixel to a 3D point in the camera frame.

        Pixels with zero (missing) or non-finite depth are dropped, so the
        result contains only valid points.

        Parameters
        ----------
        depth : ndarray of shape (height, width)
            Raw depth image.
        stride : int, optional
            Keep every ``stride``-th pixel along both image axes. Default 1.

        Returns
        -------
        points : ndarray of shape (n, 3)
            Camera-frame coordinates ``(X, Y, Z)`` in metres.
        """
        depth = np.asarray(depth)
        if depth.ndim != 2:
            raise ValueError("Expected a 2D depth image, got shape {}.".format(depth.shape))
        stride = max(1, int(stride))
        rows, cols = np.mgrid[0:depth.shape[0]:stride, 0:depth.shape[1]:stride]
        raw = depth[rows, cols].astype(np.float64)
        valid = np.isfinite(raw) & (raw > 0)
        z = raw[valid] / self.depth_scale
        x = (cols[valid] - self.cx) * z / self.fx
        y = (rows[valid] - self.cy) * z / self.fy
        return np.column_stack((x, y, z))


def transform_points(points, pose):
    """
    Apply a 4x4 homogeneous transform to an ``(n, 3)`` array of points.
    """
    points = np.asarray(points, dtype=np.float64)
    pose = np.asarray(pose, dtype=np.float64)
    if pose.shape != (4, 4):
        raise ValueError("Expected a 4x4 pose, got shape {}.".format(pose.shape))
    return points @ pose[:3, :3].T + pose[:3, 3]
